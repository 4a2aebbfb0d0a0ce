"""
Basic content set: the blocks, biomes and decorators of a default world.

Climate values span 0..5 (the default climate output range):

- plains: elevation [1, 2.5)
- hills: elevation [2.5, 3.5)
- mountains: elevation 3.5 and above
- ocean: elevation below 1

Moisture plays no part in the choice, so every climate in range matches
one of the four.

``void`` and ``beach`` never generate from climate; ``void`` is the
fallback for unassigned cells and ``beach`` is chosen for coast cells.
"""

from typing import NamedTuple

from .biomes import (
    BEACH_BIOME_NAME,
    HILLS_BIOME_NAME,
    MOUNTAINS_BIOME_NAME,
    OCEAN_BIOME_NAME,
    PLAINS_BIOME_NAME,
    VOID_BIOME_NAME,
    BiomeDefinition,
    BiomeRegistry,
    ClimateRange,
)
from .decorators import BoulderPlacer, CountRule, DecoratorDefinition, DecoratorRegistry, TreePlacer
from .registry import Registry
from .rules import (
    AboveCondition,
    BelowGroundCondition,
    BelowSeaLevelCondition,
    BlockRule,
    ChainRule,
    ConditionRule,
    DepthCondition,
    LayeredSurface,
    NoiseLayer,
    RidgedSurface,
    SurfaceCondition,
)
from .voxel import EMPTY_BLOCK, BlockDefinition, BlockRegistry

SNOW_LINE = 80
DIRT_DEPTH = 5


class Registries(NamedTuple):
    blocks: BlockRegistry
    biomes: BiomeRegistry
    decorators: DecoratorRegistry


def setup_basic_blocks(registry: BlockRegistry) -> None:
    """Register the base blocks; ``empty`` is always first."""
    registry.push_object(EMPTY_BLOCK)
    registry.push_object(BlockDefinition(name="stone", representative_color=(128, 128, 128, 255)))
    registry.push_object(BlockDefinition(name="dirt", representative_color=(134, 96, 67, 255)))
    registry.push_object(BlockDefinition(name="grass", representative_color=(95, 159, 53, 255)))
    registry.push_object(BlockDefinition(name="snowy_grass", representative_color=(240, 251, 251, 255)))
    registry.push_object(
        BlockDefinition(name="water", representative_color=(64, 64, 255, 160), has_collision_box=False)
    )
    registry.push_object(BlockDefinition(name="sand", representative_color=(219, 207, 163, 255)))
    registry.push_object(BlockDefinition(name="log", representative_color=(102, 81, 51, 255)))
    registry.push_object(BlockDefinition(name="leaves", representative_color=(60, 120, 40, 200)))


def grassland_rule(surface_block: str = "grass", snow_block: str = "snowy_grass") -> ChainRule:
    """Grass (snow above the snow line) on top, then dirt, then stone."""
    return ChainRule(
        rules=[
            ConditionRule(
                when=SurfaceCondition(),
                then=ConditionRule(
                    when=AboveCondition(value=SNOW_LINE),
                    then=BlockRule(block=snow_block),
                    otherwise=BlockRule(block=surface_block),
                ),
            ),
            ConditionRule(when=DepthCondition(min=1, max=DIRT_DEPTH), then=BlockRule(block="dirt")),
            ConditionRule(when=BelowGroundCondition(), then=BlockRule(block="stone")),
        ]
    )


def ocean_rule() -> ChainRule:
    """Sand floor over stone, water up to the sea level."""
    return ChainRule(
        rules=[
            ConditionRule(when=SurfaceCondition(), then=BlockRule(block="sand")),
            ConditionRule(when=BelowGroundCondition(), then=BlockRule(block="stone")),
            ConditionRule(when=BelowSeaLevelCondition(), then=BlockRule(block="water")),
        ]
    )


def setup_basic_biomes(registry: BiomeRegistry) -> None:
    """Register the base biomes; ``void`` is always first."""
    registry.push_object(
        BiomeDefinition(name=VOID_BIOME_NAME, representative_color=(0, 0, 0, 0), can_generate=False)
    )
    registry.push_object(
        BiomeDefinition(
            name=PLAINS_BIOME_NAME,
            representative_color=(141, 179, 96, 255),
            elevation=ClimateRange(min=1.0, max=2.5),
            rule=grassland_rule(),
            surface=LayeredSurface(
                scale=2.0,
                layers=[NoiseLayer(frequency=1.0, weight=0.75), NoiseLayer(frequency=2.0, weight=0.25)],
                amplitude=6.0,
                offset=8.0,
            ),
            blend_influence=0.5,
        )
    )
    registry.push_object(
        BiomeDefinition(
            name=HILLS_BIOME_NAME,
            representative_color=(96, 140, 60, 255),
            elevation=ClimateRange(min=2.5, max=3.5),
            rule=grassland_rule(),
            surface=LayeredSurface(
                scale=40.0,
                layers=[
                    NoiseLayer(frequency=1.0, weight=0.6),
                    NoiseLayer(frequency=1.5, weight=0.25),
                    NoiseLayer(frequency=3.0, weight=0.15),
                ],
                amplitude=12.0,
                offset=20.0,
            ),
        )
    )
    registry.push_object(
        BiomeDefinition(
            name=MOUNTAINS_BIOME_NAME,
            representative_color=(120, 120, 120, 255),
            elevation=ClimateRange(min=3.5),
            rule=grassland_rule(),
            surface=RidgedSurface(scale=16.0, amplitude=60.0, offset=40.0),
        )
    )
    registry.push_object(
        BiomeDefinition(
            name=OCEAN_BIOME_NAME,
            representative_color=(0, 0, 112, 255),
            elevation=ClimateRange(max=1.0),
            rule=ocean_rule(),
            surface=LayeredSurface(scale=4.0, amplitude=8.0, offset=-24.0),
        )
    )
    registry.push_object(
        BiomeDefinition(
            name=BEACH_BIOME_NAME,
            representative_color=(250, 222, 85, 255),
            rule=ChainRule(
                rules=[
                    ConditionRule(when=DepthCondition(min=0, max=3), then=BlockRule(block="sand")),
                    ConditionRule(when=BelowGroundCondition(), then=BlockRule(block="stone")),
                    ConditionRule(when=BelowSeaLevelCondition(), then=BlockRule(block="water")),
                ]
            ),
            surface=LayeredSurface(amplitude=1.0, offset=1.0),
            can_generate=False,
        )
    )


def setup_basic_decorators(registry: DecoratorRegistry) -> None:
    registry.push_object(
        DecoratorDefinition(
            name="oak_tree",
            count=CountRule(
                base=0.5,
                per_moisture=0.6,
                elevation=ClimateRange(min=1.0, max=3.5),
                maximum=6,
            ),
            placer=TreePlacer(),
        )
    )
    registry.push_object(
        DecoratorDefinition(
            name="boulder",
            count=CountRule(base=0.25, elevation=ClimateRange(min=2.5), maximum=2),
            placer=BoulderPlacer(),
            placement_radius=6.0,
        )
    )


def basic_registries() -> Registries:
    """Frozen block, biome and decorator registries holding the basic content set."""
    blocks: BlockRegistry = Registry("block")
    biomes: BiomeRegistry = Registry("biome")
    decorators: DecoratorRegistry = Registry("decorator")

    setup_basic_blocks(blocks)
    setup_basic_biomes(biomes)
    setup_basic_decorators(decorators)

    return Registries(blocks.freeze(), biomes.freeze(), decorators.freeze())
