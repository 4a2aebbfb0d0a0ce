"""
Multi-noise chunk generator.

For a chunk this module:
1. builds the local Voronoi partition and assigns a biome to every cell,
2. blends the nearby biomes for every column and derives the ground height
   from each biome's surface shape,
3. fills the voxels by running the blended biomes' block rules, lowest
   influence first so the dominant biome has the final say,
4. places decorators over the surrounding groups, counting them from the
   blended climate at each group center.

The generator keeps only immutable configuration; everything built for a
chunk lives inside the call, so chunks can be generated on many threads
at once.
"""

import math
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple

import numpy as np
import structlog

from ..config.config import GeneratorSettings
from ..utils.seeding import MASK_64, derive_seed
from .biomes import VOID_BIOME_NAME, BiomeAssigner, BiomeDefinition, BiomeEntry, BiomeRegistry
from .blending import Climate, find_biomes_at, normalized_climate
from .decorators import DecoratorRegistry, PlacementContext, place_decorators
from .fbm_noise import Fbm
from .positional_random import PositionalRandom
from .rules import RuleContext
from .voronoi_graph import Center, LocalPartition, NoiseValues, build_local_partition, grid_radius_for
from .voxel import (
    CHUNK_DIM,
    EMPTY_BLOCK_NAME,
    BlockEntry,
    BlockRegistry,
    Chunk,
    PaletteStorage,
    Position,
    chunk_origin,
)

logger = structlog.get_logger()

HEIGHT_SENTINEL = int(np.iinfo(np.int32).min)

# Salts separating the noise layers derived from the world seed
BASE_TERRAIN_SALT = 1
ELEVATION_SALT = 1347
TEMPERATURE_SALT = 2349
MOISTURE_SALT = 3243
POINT_OFFSET_SALT = 5463


class Noises(NamedTuple):
    """Noise stack shared by every chunk of a world."""

    base_terrain: Fbm
    elevation: Fbm
    temperature: Fbm
    moisture: Fbm
    point_offset: Fbm


class ColumnSample(NamedTuple):
    """Blend result for one column."""

    biomes: List[BiomeEntry]
    climate: Climate
    height: float


def remap(value: float, source: Tuple[float, float], target: Tuple[float, float]) -> float:
    """Linearly map ``value`` from the source range onto the target range and clamp."""
    t = (value - source[0]) / (source[1] - source[0])
    mapped = target[0] + t * (target[1] - target[0])
    return min(max(mapped, target[0]), target[1])


def round_height(height: float) -> int:
    return math.floor(height + 0.5)


def build_noises(seed: int) -> Noises:
    """Create the world's noise layers from its seed."""
    return Noises(
        base_terrain=Fbm(derive_seed(seed, BASE_TERRAIN_SALT), octaves=[-4.0, 1.0, 1.0, 0.0]),
        elevation=Fbm(derive_seed(seed, ELEVATION_SALT), octaves=[1.0, 2.0, 2.0, 1.0]),
        temperature=Fbm(derive_seed(seed, TEMPERATURE_SALT), octaves=[1.0, 2.0, 2.0, 1.0]),
        moisture=Fbm(derive_seed(seed, MOISTURE_SALT), octaves=[1.0, 2.0, 2.0, 1.0]),
        point_offset=Fbm(derive_seed(seed, POINT_OFFSET_SALT), octaves=[1.0]),
    )


class MultiNoiseGenerator:
    """Standard world generator: climate-driven biomes blended across Voronoi cells."""

    def __init__(
        self,
        seed: int,
        biome_registry: BiomeRegistry,
        block_registry: BlockRegistry,
        decorator_registry: DecoratorRegistry,
        settings: Optional[GeneratorSettings] = None,
    ):
        """
        Initialize the generator.

        Args:
            seed: 64-bit world seed
            biome_registry: Biomes; ``void`` must be registered
            block_registry: Blocks; ``empty`` and every block a rule names must be registered
            decorator_registry: Decorators placed after the terrain
            settings: Generator tunables

        Raises:
            RegistryLookupError: If a required biome or block is missing
        """
        self.seed = seed & MASK_64
        self.biome_registry = biome_registry
        self.block_registry = block_registry
        self.decorator_registry = decorator_registry
        self.settings = settings or GeneratorSettings()

        self.void_id = biome_registry.id_of(VOID_BIOME_NAME)
        self.empty_block = BlockEntry(block_registry.id_of(EMPTY_BLOCK_NAME))
        self._check_block_names()

        self.assigner = BiomeAssigner(biome_registry)
        self.noises = build_noises(self.seed)
        self.grid_radius = grid_radius_for(self.settings.blend_radius, self._partition_margin())

        logger.info(
            "Generator created",
            seed=self.seed,
            biomes=len(biome_registry),
            generatable=len(self.assigner.generatable),
            blocks=len(block_registry),
            decorators=len(decorator_registry),
            grid_radius=self.grid_radius,
        )

    def _check_block_names(self) -> None:
        for _, biome in self.biome_registry.items():
            for name in biome.rule.block_names():
                self.block_registry.require(name)
        for _, decorator in self.decorator_registry.items():
            for name in decorator.placer.block_names():
                self.block_registry.require(name)

    def _partition_margin(self) -> int:
        """Columns beyond the chunk whose blend the chunk itself evaluates."""
        # One column past every border
        margin = 1
        extents = [decorator.radius for _, decorator in self.decorator_registry.items()]
        if extents:
            reach = min(max(extents), self.settings.decorator_neighborhood_chunks * CHUNK_DIM // 2)
            # Decorator groups are sampled at their centers, half a group beyond the reach
            margin += reach + self.settings.group_size // 2
        return margin

    def make_noise(self, point: Tuple[float, float]) -> NoiseValues:
        """Climate sample at an absolute horizontal point."""
        scale = self.settings.biome_scale
        p = (point[0] / scale, point[1] / scale)
        source = self.settings.climate_input_range
        target = self.settings.climate_output_range
        return NoiseValues(
            elevation=remap(self.noises.elevation.get(p), source, target),
            temperature=remap(self.noises.temperature.get(p), source, target),
            moisture=remap(self.noises.moisture.get(p), source, target),
        )

    def build_partition(self, position: Position) -> Tuple[LocalPartition, PositionalRandom]:
        """
        Build a chunk's partition and assign its biomes.

        Returns:
            (partition with every cell assigned, the chunk's random stream)
        """
        origin = chunk_origin(position)
        half = CHUNK_DIM // 2
        rand = PositionalRandom.seed_for(self.seed, origin[0] + half, origin[2] + half)

        partition = build_local_partition(
            position,
            self.noises.point_offset,
            self.make_noise,
            self.settings.site_jitter_scale,
            self.grid_radius,
        )
        for index in partition.site_order:
            self.assigner.assign(partition.centers[index], rand)
        return partition, rand

    def column_height(self, x: float, z: float, blend: List[BiomeEntry]) -> float:
        """
        Blended, unrounded ground height of a column.

        Each biome's surface is normalised to ``(value + 1) / 2`` and
        weighted by its blend weight times its blend influence.
        """
        scale = self.settings.biome_scale
        point = (x / scale, z / scale)

        heights = 0.0
        weights = 0.0
        for entry in blend:
            biome = entry.lookup(self.biome_registry)
            noise = (biome.surface.evaluate(point, self.noises.base_terrain) + 1.0) / 2.0
            strength = entry.weight * biome.blend_influence
            heights += noise * strength
            weights += strength

        if weights <= 0.0:
            return float(self.settings.sea_level)
        return heights / weights

    def _sample(self, centers: List[Center], x: int, z: int) -> ColumnSample:
        biomes, climate = find_biomes_at((float(x), float(z)), self.void_id, centers, self.settings.blend_radius)
        return ColumnSample(biomes, normalized_climate(biomes, climate), self.column_height(x, z, biomes))

    def blended_climate(self, point: Tuple[float, float], centers: List[Center]) -> NoiseValues:
        """Weighted average climate of the cells blending at a point."""
        biomes, climate = find_biomes_at(point, self.void_id, centers, self.settings.blend_radius)
        return NoiseValues(*normalized_climate(biomes, climate))

    def sample_columns(self, chunk_position: Position, columns: Iterable[Tuple[int, int]]) -> List[ColumnSample]:
        """
        Blend results for absolute columns, all taken from one chunk's partition.

        Args:
            chunk_position: Chunk whose partition to use
            columns: Absolute (x, z) block columns

        Returns:
            One sample per column, in order
        """
        partition, _ = self.build_partition(chunk_position)
        return [self._sample(partition.centers, x, z) for x, z in columns]

    def sample_column(self, x: int, z: int, chunk_position: Optional[Position] = None) -> ColumnSample:
        """
        Blend result for an absolute column.

        Args:
            x, z: Absolute block column
            chunk_position: Chunk whose partition to use; defaults to the chunk holding the column

        Returns:
            Blended biomes, normalised climate and unrounded height
        """
        if chunk_position is None:
            chunk_position = (x // CHUNK_DIM, 0, z // CHUNK_DIM)
        return self.sample_columns(chunk_position, [(x, z)])[0]

    def _sorted_biomes(self, blend: List[BiomeEntry]) -> List[Tuple[BiomeDefinition, float]]:
        scored = []
        for entry in blend:
            biome = entry.lookup(self.biome_registry)
            scored.append((entry.weight * biome.block_influence, entry.id, biome))
        # Lowest influence first; registry id breaks ties
        scored.sort(key=lambda item: (item[0], item[1]))
        return [(biome, score) for score, _, biome in scored]

    def fill_blocks(self, chunk: Chunk, heights: np.ndarray, blended: List[List[List[BiomeEntry]]]) -> None:
        """Run the blended block rules over every voxel of the chunk."""
        origin = chunk_origin(chunk.position)
        sea_level = self.settings.sea_level

        for x in range(CHUNK_DIM):
            for z in range(CHUNK_DIM):
                biomes = self._sorted_biomes(blended[x][z])
                ctx = RuleContext(seed=self.seed, chunk=chunk.blocks, ground_y=int(heights[x, z]), sea_level=sea_level)
                for y in range(CHUNK_DIM):
                    g_pos = (origin[0] + x, origin[1] + y, origin[2] + z)
                    for biome, _ in biomes:
                        result = biome.rule.evaluate(g_pos, ctx, self.block_registry)
                        if result is not None:
                            chunk.blocks.put((x, y, z), result)

    def generate_chunk(self, position: Position, extra_data: Any = None) -> Chunk:
        """
        Generate a single chunk.

        Args:
            position: Absolute chunk coordinate (x, y, z)
            extra_data: Opaque payload returned unchanged on the chunk

        Returns:
            Fully populated chunk

        Raises:
            GenerationError: If the chunk cannot be generated; no partial chunk is returned
        """
        position = (int(position[0]), int(position[1]), int(position[2]))
        origin = chunk_origin(position)
        partition, _ = self.build_partition(position)

        heights = np.full((CHUNK_DIM, CHUNK_DIM), HEIGHT_SENTINEL, dtype=np.int32)
        blended: List[List[List[BiomeEntry]]] = [[[] for _ in range(CHUNK_DIM)] for _ in range(CHUNK_DIM)]
        for x in range(CHUNK_DIM):
            for z in range(CHUNK_DIM):
                sample = self._sample(partition.centers, origin[0] + x, origin[2] + z)
                blended[x][z] = sample.biomes
                heights[x, z] = round_height(sample.height)

        chunk = Chunk(position=position, blocks=PaletteStorage(self.empty_block), extra_data=extra_data)
        self.fill_blocks(chunk, heights, blended)

        outside: Dict[Tuple[int, int], int] = {}

        def height_at(x: int, z: int) -> int:
            lx, lz = x - origin[0], z - origin[2]
            if 0 <= lx < CHUNK_DIM and 0 <= lz < CHUNK_DIM:
                return int(heights[lx, lz])
            if (x, z) not in outside:
                outside[(x, z)] = round_height(self._sample(partition.centers, x, z).height)
            return outside[(x, z)]

        ctx = PlacementContext(seed=self.seed, sea_level=self.settings.sea_level, blocks=self.block_registry)
        features = place_decorators(
            chunk,
            self.decorator_registry,
            ctx,
            lambda point: self.blended_climate(point, partition.centers),
            height_at,
            group_size=self.settings.group_size,
            neighborhood_chunks=self.settings.decorator_neighborhood_chunks,
        )

        logger.debug(
            "Chunk generated",
            position=position,
            cells=len(partition.centers),
            features=len(features),
            palette=len(chunk.blocks.palette),
        )
        return chunk
