"""
Biome definitions and climate-based biome assignment.

This module implements:
- Declarative biome definitions (climate ranges, block rule, surface shape)
- First-match biome assignment for Voronoi cells
- Random fallback with a warning when the configured ranges leave a gap
"""

from typing import List, NamedTuple, Optional, Tuple

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import RegistryLookupError
from .positional_random import PositionalRandom
from .registry import Registry
from .rules import ChainRule, LayeredSurface, Rule, Surface
from .voronoi_graph import Center, NoiseValues

logger = structlog.get_logger()

VOID_BIOME_NAME = "void"
PLAINS_BIOME_NAME = "plains"
HILLS_BIOME_NAME = "hills"
MOUNTAINS_BIOME_NAME = "mountains"
OCEAN_BIOME_NAME = "ocean"
BEACH_BIOME_NAME = "beach"

# Biomes a single column usually blends
EXPECTED_BIOME_COUNT = 3


class ClimateRange(BaseModel):
    """Half-open interval ``[min, max)``; a missing bound is unbounded."""

    model_config = ConfigDict(frozen=True)

    min: Optional[float] = None
    max: Optional[float] = None

    @model_validator(mode="after")
    def _check_order(self) -> "ClimateRange":
        if self.min is not None and self.max is not None and self.min >= self.max:
            raise ValueError(f"climate range min {self.min} must be below max {self.max}")
        return self

    def contains(self, value: float) -> bool:
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value >= self.max:
            return False
        return True


class BiomeDefinition(BaseModel):
    """A biome: where it generates, how its ground is shaped and what it is made of."""

    model_config = ConfigDict(frozen=True)

    name: str
    representative_color: Tuple[int, int, int, int] = (255, 255, 255, 255)
    elevation: ClimateRange = Field(default_factory=ClimateRange)
    temperature: ClimateRange = Field(default_factory=ClimateRange)
    moisture: ClimateRange = Field(default_factory=ClimateRange)
    rule: Rule = Field(default_factory=ChainRule)
    surface: Surface = Field(default_factory=LayeredSurface)
    blend_influence: float = Field(default=1.0, ge=0.0)
    block_influence: float = Field(default=1.0, ge=0.0)
    can_generate: bool = True

    def matches(self, noise: NoiseValues) -> bool:
        return (
            self.elevation.contains(noise.elevation)
            and self.temperature.contains(noise.temperature)
            and self.moisture.contains(noise.moisture)
        )


BiomeRegistry = Registry[BiomeDefinition]


class BiomeEntry(NamedTuple):
    """A biome's blend contribution at a point."""

    id: int
    weight: float

    def lookup(self, registry: BiomeRegistry) -> BiomeDefinition:
        return registry.require_id(self.id)


class BiomeAssigner:
    """Assigns biomes to Voronoi cells from their cached climate."""

    def __init__(self, registry: BiomeRegistry):
        """
        Initialize the assigner.

        Args:
            registry: Biome registry; generatable biomes are tried in registry order

        Raises:
            RegistryLookupError: If no biome can generate
        """
        self.registry = registry
        self.generatable: List[Tuple[int, BiomeDefinition]] = [
            (biome_id, biome) for biome_id, biome in registry.items() if biome.can_generate
        ]
        if not self.generatable:
            raise RegistryLookupError(registry.kind, "<any generatable biome>")

    def match(self, noise: NoiseValues) -> Optional[int]:
        """First generatable biome whose ranges contain the climate, if any."""
        for biome_id, biome in self.generatable:
            if biome.matches(noise):
                return biome_id
        return None

    def assign(self, center: Center, rand: PositionalRandom) -> int:
        """
        Assign a biome to a cell. Does nothing if it already has one.

        Args:
            center: Cell to assign
            rand: The chunk's random stream, used only for the fallback

        Returns:
            The cell's biome id
        """
        if center.biome is not None:
            return center.biome

        if center.ocean or center.water:
            # TODO: give inland water its own lake biome once hydrology sets the flag
            center.biome = self.registry.id_of(OCEAN_BIOME_NAME)
            return center.biome
        if center.coast:
            center.biome = self.registry.id_of(BEACH_BIOME_NAME)
            return center.biome

        biome_id = self.match(center.noise)
        if biome_id is None:
            biome_id, biome = self.generatable[rand.gen_range(0, len(self.generatable))]
            logger.warning(
                "no biome matches climate",
                point=center.point,
                elevation=center.noise.elevation,
                temperature=center.noise.temperature,
                moisture=center.noise.moisture,
                picked=biome.name,
            )

        center.biome = biome_id
        return biome_id
