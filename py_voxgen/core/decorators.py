"""
Decorators: features such as trees and boulders placed on top of the terrain.

Decorator positions are drawn per fixed-size horizontal *group* from a
random stream seeded by the world seed, the decorator and the group
position only. Every chunk that a feature can reach therefore draws the
same positions and the same shapes, and each writes its own part of the
feature.
"""

from dataclasses import dataclass
from typing import Annotated, Callable, Iterator, List, Literal, NamedTuple, Optional, Set, Tuple, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field

from .biomes import ClimateRange
from .positional_random import PositionalRandom
from .registry import Registry
from .voronoi_graph import NoiseValues
from .voxel import CHUNK_DIM, BlockEntry, BlockRegistry, Chunk, Position, chunk_origin, in_chunk
from ..utils.seeding import mix_seed

logger = structlog.get_logger()

GROUP_SIZE = 16
DECORATOR_SALT = 0xDEC0
SHAPE_SALT = 0x5A4E
# Neighborhood width, in chunks, that decorator groups are gathered from
DECORATOR_NEIGHBORHOOD = 8


class DecoratorEntry(NamedTuple):
    """One feature instance: decorator id and absolute ground position."""

    id: int
    pos: Position


@dataclass(frozen=True)
class PlacementContext:
    seed: int
    sea_level: int
    blocks: BlockRegistry


class CountRule(BaseModel):
    """
    Expected number of features per group as a linear function of climate.

    Outside the climate ranges the count is zero. The fractional part of
    the expectation becomes a single Bernoulli draw.
    """

    model_config = ConfigDict(frozen=True)

    base: float = 0.0
    per_elevation: float = 0.0
    per_temperature: float = 0.0
    per_moisture: float = 0.0
    elevation: ClimateRange = Field(default_factory=ClimateRange)
    temperature: ClimateRange = Field(default_factory=ClimateRange)
    moisture: ClimateRange = Field(default_factory=ClimateRange)
    maximum: int = Field(default=64, ge=0)

    def expected(self, climate: NoiseValues) -> float:
        if not (
            self.elevation.contains(climate.elevation)
            and self.temperature.contains(climate.temperature)
            and self.moisture.contains(climate.moisture)
        ):
            return 0.0
        value = (
            self.base
            + self.per_elevation * climate.elevation
            + self.per_temperature * climate.temperature
            + self.per_moisture * climate.moisture
        )
        return min(max(value, 0.0), float(self.maximum))

    def sample(self, climate: NoiseValues, rand: PositionalRandom) -> int:
        expected = self.expected(climate)
        count = int(expected)
        if rand.random() < expected - count:
            count += 1
        return count


def _put(chunk: Chunk, pos: Position, entry: BlockEntry) -> bool:
    origin = chunk_origin(chunk.position)
    local = (pos[0] - origin[0], pos[1] - origin[1], pos[2] - origin[2])
    if not in_chunk(local):
        return False
    return chunk.blocks.put_if_empty(local, entry)


class TreePlacer(BaseModel):
    """A trunk with a rounded crown of leaves."""

    model_config = ConfigDict(frozen=True)

    type: Literal["tree"] = "tree"
    trunk_block: str = "log"
    leaves_block: str = "leaves"
    min_trunk_height: int = Field(default=4, ge=1)
    max_trunk_height: int = Field(default=6, ge=1)
    crown_radius: int = Field(default=2, ge=0)

    @property
    def extent(self) -> int:
        return self.crown_radius

    def block_names(self) -> Set[str]:
        return {self.trunk_block, self.leaves_block}

    def place(self, chunk: Chunk, pos: Position, ctx: PlacementContext, rand: PositionalRandom) -> int:
        trunk_height = rand.gen_range(self.min_trunk_height, max(self.min_trunk_height, self.max_trunk_height) + 1)
        if pos[1] < ctx.sea_level:
            return 0

        trunk = BlockEntry(ctx.blocks.id_of(self.trunk_block))
        leaves = BlockEntry(ctx.blocks.id_of(self.leaves_block))
        x, ground, z = pos
        placed = 0
        for y in range(ground + 1, ground + trunk_height + 1):
            placed += _put(chunk, (x, y, z), trunk)

        top = ground + trunk_height
        r = self.crown_radius
        for dy in range(-r, r + 1):
            for dx in range(-r, r + 1):
                for dz in range(-r, r + 1):
                    if dx * dx + dy * dy + dz * dz > r * r + 1:
                        continue
                    placed += _put(chunk, (x + dx, top + dy, z + dz), leaves)
        return placed


class BoulderPlacer(BaseModel):
    """A rough ball of rock half sunk into the ground."""

    model_config = ConfigDict(frozen=True)

    type: Literal["boulder"] = "boulder"
    block: str = "stone"
    min_radius: int = Field(default=1, ge=0)
    max_radius: int = Field(default=2, ge=0)

    @property
    def extent(self) -> int:
        return self.max_radius

    def block_names(self) -> Set[str]:
        return {self.block}

    def place(self, chunk: Chunk, pos: Position, ctx: PlacementContext, rand: PositionalRandom) -> int:
        radius = rand.gen_range(self.min_radius, max(self.min_radius, self.max_radius) + 1)
        entry = BlockEntry(ctx.blocks.id_of(self.block))
        x, ground, z = pos
        placed = 0
        for dy in range(-radius, radius + 1):
            for dx in range(-radius, radius + 1):
                for dz in range(-radius, radius + 1):
                    if dx * dx + dy * dy + dz * dz <= radius * radius:
                        placed += _put(chunk, (x + dx, ground + dy, z + dz), entry)
        return placed


Placer = Annotated[Union[TreePlacer, BoulderPlacer], Field(discriminator="type")]


class DecoratorDefinition(BaseModel):
    """A placeable feature with its own count and placement logic."""

    model_config = ConfigDict(frozen=True)

    name: str
    count: CountRule = Field(default_factory=CountRule)
    placer: Placer
    # Only positions this close to the group center are kept; None keeps the whole group
    placement_radius: Optional[float] = None

    @property
    def radius(self) -> int:
        """Horizontal distance a feature can reach from its position."""
        return self.placer.extent


DecoratorRegistry = Registry[DecoratorDefinition]


def group_range(low: int, high: int, group_size: int) -> range:
    """Group coordinates whose squares intersect the block interval [low, high]."""
    return range(low // group_size, high // group_size + 1)


def decorator_positions_in_group(
    decorator: DecoratorDefinition,
    group: Tuple[int, int],
    climate: NoiseValues,
    rand: PositionalRandom,
    group_size: int,
) -> List[Tuple[int, int]]:
    """
    Draw the feature positions of one group.

    Args:
        decorator: Decorator definition
        group: Group coordinate (gx, gz)
        climate: Climate at the group center
        rand: The group's random stream
        group_size: Group edge length in blocks

    Returns:
        Distinct absolute (x, z) positions within the placement radius
    """
    count = decorator.count.sample(climate, rand)
    if count == 0:
        return []

    half = group_size // 2
    cx = group[0] * group_size + half
    cz = group[1] * group_size + half
    limit = decorator.placement_radius if decorator.placement_radius is not None else float(group_size)

    seen = set()
    positions = []
    for _ in range(count):
        x = cx + rand.gen_range(-half, half)
        z = cz + rand.gen_range(-half, half)
        if (x, z) in seen:
            continue
        seen.add((x, z))
        if (x - cx) ** 2 + (z - cz) ** 2 <= limit * limit:
            positions.append((x, z))
    return positions


def candidate_groups(
    chunk_position: Position, radius: int, group_size: int, neighborhood_chunks: int = DECORATOR_NEIGHBORHOOD
) -> Iterator[Tuple[int, int]]:
    """Groups holding positions whose features could reach the chunk."""
    radius = min(radius, neighborhood_chunks * CHUNK_DIM // 2)
    origin = chunk_origin(chunk_position)
    for gx in group_range(origin[0] - radius, origin[0] + CHUNK_DIM - 1 + radius, group_size):
        for gz in group_range(origin[2] - radius, origin[2] + CHUNK_DIM - 1 + radius, group_size):
            yield gx, gz


def place_decorators(
    chunk: Chunk,
    registry: DecoratorRegistry,
    ctx: PlacementContext,
    climate_at: Callable[[Tuple[float, float]], NoiseValues],
    height_at: Callable[[int, int], int],
    group_size: int = GROUP_SIZE,
    neighborhood_chunks: int = DECORATOR_NEIGHBORHOOD,
) -> List[DecoratorEntry]:
    """
    Place every decorator whose features reach into the chunk.

    Args:
        chunk: Chunk to write into
        registry: Decorators, processed in registry order
        ctx: World seed, sea level and block registry
        climate_at: Climate sampler for a horizontal point
        height_at: Ground height of any absolute column
        group_size: Group edge length in blocks
        neighborhood_chunks: Width of the neighborhood groups are taken from

    Returns:
        The feature instances that were considered for this chunk
    """
    origin = chunk_origin(chunk.position)
    entries: List[DecoratorEntry] = []

    for decorator_id, decorator in registry.items():
        decorator_seed = mix_seed(ctx.seed, DECORATOR_SALT, decorator_id)
        shape_seed = mix_seed(decorator_seed, SHAPE_SALT)
        radius = decorator.radius

        for group in candidate_groups(chunk.position, radius, group_size, neighborhood_chunks):
            half = group_size // 2
            center = (group[0] * group_size + half, group[1] * group_size + half)
            rand = PositionalRandom.seed_for(decorator_seed, group[0], group[1])
            positions = decorator_positions_in_group(
                decorator, group, climate_at(center), rand, group_size
            )

            for x, z in positions:
                # Features that cannot reach this chunk are left to their own chunk
                if not (
                    origin[0] - radius <= x < origin[0] + CHUNK_DIM + radius
                    and origin[2] - radius <= z < origin[2] + CHUNK_DIM + radius
                ):
                    continue
                ground = height_at(x, z)
                entry = DecoratorEntry(decorator_id, (x, ground, z))
                entries.append(entry)
                decorator.placer.place(chunk, entry.pos, ctx, PositionalRandom.seed_for(shape_seed, x, z))

    logger.debug("Decorators placed", chunk=chunk.position, features=len(entries))
    return entries
