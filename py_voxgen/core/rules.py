"""
Declarative block-placement rules and surface-noise shapes.

Biomes describe their terrain as data instead of code:

- a *rule* tree decides which block (if any) a biome puts at a voxel,
  given the column's ground height and the sea level;
- a *surface* shape turns the shared base terrain noise into the biome's
  raw ground height.

Both are pydantic models discriminated by their ``type`` field, so a
registry loader can build them straight from JSON.
"""

from dataclasses import dataclass
from typing import Annotated, List, Literal, Optional, Set, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .fbm_noise import Fbm
from .voxel import BlockEntry, BlockRegistry, PaletteStorage, Position


@dataclass(frozen=True)
class RuleContext:
    """What a rule may inspect besides the voxel position."""

    seed: int
    chunk: PaletteStorage
    ground_y: int
    sea_level: int


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True)


# Conditions


class SurfaceCondition(_Node):
    """Voxel sits exactly ``offset`` blocks above the ground height."""

    type: Literal["surface"] = "surface"
    offset: int = 0

    def test(self, pos: Position, ctx: RuleContext) -> bool:
        return pos[1] == ctx.ground_y + self.offset


class DepthCondition(_Node):
    """``min <= ground_y - y < max``; depth 0 is the surface voxel."""

    type: Literal["depth"] = "depth"
    min: int = 0
    max: int

    def test(self, pos: Position, ctx: RuleContext) -> bool:
        return self.min <= ctx.ground_y - pos[1] < self.max


class BelowGroundCondition(_Node):
    type: Literal["below_ground"] = "below_ground"

    def test(self, pos: Position, ctx: RuleContext) -> bool:
        return pos[1] < ctx.ground_y


class BelowSeaLevelCondition(_Node):
    type: Literal["below_sea_level"] = "below_sea_level"

    def test(self, pos: Position, ctx: RuleContext) -> bool:
        return pos[1] < ctx.sea_level


class AboveCondition(_Node):
    """Absolute ``y >= value``."""

    type: Literal["above"] = "above"
    value: int

    def test(self, pos: Position, ctx: RuleContext) -> bool:
        return pos[1] >= self.value


class AllCondition(_Node):
    type: Literal["all"] = "all"
    conditions: List["Condition"]

    def test(self, pos: Position, ctx: RuleContext) -> bool:
        return all(c.test(pos, ctx) for c in self.conditions)


class AnyCondition(_Node):
    type: Literal["any"] = "any"
    conditions: List["Condition"]

    def test(self, pos: Position, ctx: RuleContext) -> bool:
        return any(c.test(pos, ctx) for c in self.conditions)


class NotCondition(_Node):
    type: Literal["not"] = "not"
    condition: "Condition"

    def test(self, pos: Position, ctx: RuleContext) -> bool:
        return not self.condition.test(pos, ctx)


Condition = Annotated[
    Union[
        SurfaceCondition,
        DepthCondition,
        BelowGroundCondition,
        BelowSeaLevelCondition,
        AboveCondition,
        AllCondition,
        AnyCondition,
        NotCondition,
    ],
    Field(discriminator="type"),
]


# Rules


class BlockRule(_Node):
    """Terminal rule: always places the named block."""

    type: Literal["block"] = "block"
    block: str
    metadata: int = 0

    def evaluate(self, pos: Position, ctx: RuleContext, blocks: BlockRegistry) -> Optional[BlockEntry]:
        return BlockEntry(blocks.id_of(self.block), self.metadata)

    def block_names(self) -> Set[str]:
        return {self.block}


class ConditionRule(_Node):
    """Evaluate ``then`` when the condition holds, else ``otherwise`` (if any)."""

    type: Literal["condition"] = "condition"
    when: Condition
    then: "Rule"
    otherwise: Optional["Rule"] = None

    def evaluate(self, pos: Position, ctx: RuleContext, blocks: BlockRegistry) -> Optional[BlockEntry]:
        if self.when.test(pos, ctx):
            return self.then.evaluate(pos, ctx, blocks)
        if self.otherwise is not None:
            return self.otherwise.evaluate(pos, ctx, blocks)
        return None

    def block_names(self) -> Set[str]:
        names = self.then.block_names()
        if self.otherwise is not None:
            names |= self.otherwise.block_names()
        return names


class ChainRule(_Node):
    """First non-empty result of the child rules, in order."""

    type: Literal["chain"] = "chain"
    rules: List["Rule"] = Field(default_factory=list)

    def evaluate(self, pos: Position, ctx: RuleContext, blocks: BlockRegistry) -> Optional[BlockEntry]:
        for rule in self.rules:
            result = rule.evaluate(pos, ctx, blocks)
            if result is not None:
                return result
        return None

    def block_names(self) -> Set[str]:
        names: Set[str] = set()
        for rule in self.rules:
            names |= rule.block_names()
        return names


Rule = Annotated[Union[BlockRule, ConditionRule, ChainRule], Field(discriminator="type")]


# Surface shapes


class NoiseLayer(_Node):
    frequency: float = 1.0
    weight: float = 1.0


class LayeredSurface(_Node):
    """
    Weighted sum of base-noise samples at several frequencies.

    ``value = sum(noise(p * scale * f) * w) * amplitude + offset``
    """

    type: Literal["layered"] = "layered"
    scale: float = 1.0
    layers: List[NoiseLayer] = Field(default_factory=lambda: [NoiseLayer()])
    amplitude: float = 1.0
    offset: float = 0.0

    def evaluate(self, point: Tuple[float, float], noise: Fbm) -> float:
        x, z = point[0] * self.scale, point[1] * self.scale
        value = 0.0
        for layer in self.layers:
            value += noise.get((x * layer.frequency, z * layer.frequency)) * layer.weight
        return value * self.amplitude + self.offset


def _ridge(value: float) -> float:
    return (0.5 - abs(0.5 - value)) * 2.0


class RidgedSurface(_Node):
    """
    Layered base shape sharpened by folded (ridge) noise, used for mountains.
    """

    type: Literal["ridged"] = "ridged"
    scale: float = 1.0
    layers: List[NoiseLayer] = Field(
        default_factory=lambda: [NoiseLayer(frequency=2.0, weight=0.25), NoiseLayer(frequency=1.0, weight=0.5)]
    )
    ridge_frequency: float = 5.0
    ridge_weight: float = 0.15
    detail_frequency: float = 9.0
    detail_weight: float = 0.05
    amplitude: float = 1.0
    offset: float = 0.0

    def evaluate(self, point: Tuple[float, float], noise: Fbm) -> float:
        x, z = point[0] * self.scale, point[1] * self.scale
        base = 0.0
        for layer in self.layers:
            base += noise.get((x * layer.frequency, z * layer.frequency)) * layer.weight
        total_weight = sum(layer.weight for layer in self.layers) or 1.0
        normalized = base / total_weight

        ridge = _ridge(noise.get((x * self.ridge_frequency, z * self.ridge_frequency)))
        detail = _ridge(noise.get((x * self.detail_frequency, z * self.detail_frequency)))

        value = normalized * self.ridge_weight * ridge + base + normalized + self.detail_weight * detail
        return value * self.amplitude + self.offset


Surface = Annotated[Union[LayeredSurface, RidgedSurface], Field(discriminator="type")]


AllCondition.model_rebuild()
AnyCondition.model_rebuild()
NotCondition.model_rebuild()
ConditionRule.model_rebuild()
ChainRule.model_rebuild()
