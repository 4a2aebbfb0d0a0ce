"""
Core chunk generation functionality.
"""

from .errors import GenerationError, PartitionError, RegistryLookupError
from .registry import Registry
from .voxel import BlockDefinition, BlockEntry, Chunk, PaletteStorage, CHUNK_DIM
from .fbm_noise import Fbm
from .positional_random import PositionalRandom
from .voronoi_graph import LocalPartition, NoiseValues, build_local_partition
from .biomes import BiomeAssigner, BiomeDefinition, BiomeEntry, ClimateRange
from .decorators import DecoratorDefinition, DecoratorEntry, place_decorators
from .generator import ColumnSample, MultiNoiseGenerator
from .builtin import basic_registries

__all__ = ['GenerationError', 'PartitionError', 'RegistryLookupError', 'Registry',
           'BlockDefinition', 'BlockEntry', 'Chunk', 'PaletteStorage', 'CHUNK_DIM',
           'Fbm', 'PositionalRandom', 'LocalPartition', 'NoiseValues', 'build_local_partition',
           'BiomeAssigner', 'BiomeDefinition', 'BiomeEntry', 'ClimateRange',
           'DecoratorDefinition', 'DecoratorEntry', 'place_decorators',
           'ColumnSample', 'MultiNoiseGenerator', 'basic_registries']
