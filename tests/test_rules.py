"""Tests for the declarative block rules and surface shapes."""

import pytest
from pydantic import ValidationError

from py_voxgen.core.biomes import BiomeDefinition
from py_voxgen.core.builtin import basic_registries, grassland_rule, ocean_rule
from py_voxgen.core.errors import RegistryLookupError
from py_voxgen.core.fbm_noise import Fbm
from py_voxgen.core.rules import (
    AboveCondition,
    AllCondition,
    AnyCondition,
    BelowGroundCondition,
    BlockRule,
    ChainRule,
    ConditionRule,
    DepthCondition,
    LayeredSurface,
    NotCondition,
    RidgedSurface,
    RuleContext,
    SurfaceCondition,
)
from py_voxgen.core.voxel import BlockEntry, PaletteStorage


def make_context(ground_y, sea_level=0):
    return RuleContext(seed=1, chunk=PaletteStorage(BlockEntry(1)), ground_y=ground_y, sea_level=sea_level)


class TestConditions:
    """Test individual conditions."""

    def test_surface(self):
        """Test surface offset."""
        ctx = make_context(10)
        assert SurfaceCondition().test((0, 10, 0), ctx)
        assert not SurfaceCondition().test((0, 11, 0), ctx)
        assert SurfaceCondition(offset=1).test((0, 11, 0), ctx)

    def test_depth(self):
        """Test half-open depth ranges."""
        ctx = make_context(10)
        condition = DepthCondition(min=1, max=3)
        assert not condition.test((0, 10, 0), ctx)
        assert condition.test((0, 9, 0), ctx)
        assert condition.test((0, 8, 0), ctx)
        assert not condition.test((0, 7, 0), ctx)

    def test_below_ground_and_sea(self):
        """Test ground and sea level comparisons."""
        ctx = make_context(-5, sea_level=0)
        assert BelowGroundCondition().test((0, -6, 0), ctx)
        assert not BelowGroundCondition().test((0, -5, 0), ctx)

    def test_combinators(self):
        """Test all / any / not."""
        ctx = make_context(10)
        high = AboveCondition(value=5)
        surface = SurfaceCondition()
        assert AllCondition(conditions=[high, surface]).test((0, 10, 0), ctx)
        assert not AllCondition(conditions=[high, surface]).test((0, 9, 0), ctx)
        assert AnyCondition(conditions=[high, surface]).test((0, 9, 0), ctx)
        assert NotCondition(condition=surface).test((0, 9, 0), ctx)


class TestRules:
    """Test rule evaluation against the basic blocks."""

    def setup_method(self):
        """Setup test fixtures."""
        self.blocks = basic_registries().blocks

    def block_at(self, rule, y, ground_y, sea_level=0):
        result = rule.evaluate((3, y, 4), make_context(ground_y, sea_level), self.blocks)
        if result is None:
            return None
        return self.blocks.require_id(result.id).name

    def test_grassland_layers(self):
        """Test grass over dirt over stone."""
        rule = grassland_rule()
        assert self.block_at(rule, 11, 10) is None
        assert self.block_at(rule, 10, 10) == "grass"
        assert self.block_at(rule, 9, 10) == "dirt"
        assert self.block_at(rule, 6, 10) == "dirt"
        assert self.block_at(rule, 5, 10) == "stone"
        assert self.block_at(rule, -40, 10) == "stone"

    def test_snow_line(self):
        """Test snowy grass on high ground."""
        rule = grassland_rule()
        assert self.block_at(rule, 85, 85) == "snowy_grass"
        assert self.block_at(rule, 79, 79) == "grass"

    def test_ocean_layers(self):
        """Test sand floor, stone and water up to the sea level."""
        rule = ocean_rule()
        assert self.block_at(rule, -10, -10) == "sand"
        assert self.block_at(rule, -11, -10) == "stone"
        assert self.block_at(rule, -5, -10) == "water"
        assert self.block_at(rule, -1, -10) == "water"
        assert self.block_at(rule, 0, -10) is None

    def test_condition_otherwise(self):
        """Test the else branch."""
        rule = ConditionRule(when=SurfaceCondition(), then=BlockRule(block="grass"), otherwise=BlockRule(block="dirt"))
        assert self.block_at(rule, 3, 3) == "grass"
        assert self.block_at(rule, 4, 3) == "dirt"

    def test_metadata(self):
        """Test that metadata is carried into the entry."""
        rule = BlockRule(block="stone", metadata=4)
        result = rule.evaluate((0, 0, 0), make_context(0), self.blocks)
        assert result == BlockEntry(self.blocks.id_of("stone"), 4)

    def test_empty_chain(self):
        """Test that an empty chain places nothing."""
        assert ChainRule().evaluate((0, 0, 0), make_context(0), self.blocks) is None

    def test_unknown_block(self):
        """Test that an unknown block name is a lookup error."""
        with pytest.raises(RegistryLookupError):
            BlockRule(block="unobtainium").evaluate((0, 0, 0), make_context(0), self.blocks)

    def test_block_names(self):
        """Test collecting referenced blocks."""
        assert grassland_rule().block_names() == {"grass", "snowy_grass", "dirt", "stone"}
        assert ocean_rule().block_names() == {"sand", "stone", "water"}


class TestRuleData:
    """Test building rules from plain data."""

    def test_from_json(self):
        """Test discriminated parsing of nested rules."""
        biome = BiomeDefinition.model_validate(
            {
                "name": "tundra",
                "elevation": {"min": 1.0, "max": 2.0},
                "rule": {
                    "type": "chain",
                    "rules": [
                        {
                            "type": "condition",
                            "when": {"type": "not", "condition": {"type": "below_ground"}},
                            "then": {"type": "block", "block": "snowy_grass"},
                        },
                        {"type": "block", "block": "stone"},
                    ],
                },
                "surface": {"type": "ridged", "amplitude": 20.0},
            }
        )
        assert isinstance(biome.rule, ChainRule)
        assert isinstance(biome.rule.rules[0], ConditionRule)
        assert isinstance(biome.rule.rules[0].when, NotCondition)
        assert isinstance(biome.surface, RidgedSurface)
        assert biome.rule.block_names() == {"snowy_grass", "stone"}

    def test_unknown_type(self):
        """Test that an unknown rule type is rejected."""
        with pytest.raises(ValidationError):
            BiomeDefinition.model_validate({"name": "bad", "rule": {"type": "teleport"}})


class TestSurfaces:
    """Test surface shapes."""

    def setup_method(self):
        """Setup test fixtures."""
        self.noise = Fbm(seed=17, octaves=[1.0, 1.0])

    def test_layered_offset_only(self):
        """Test that zero amplitude leaves just the offset."""
        surface = LayeredSurface(amplitude=0.0, offset=3.5)
        assert surface.evaluate((0.4, 0.9), self.noise) == pytest.approx(3.5)

    def test_layered_sum(self):
        """Test weighted layer sum."""
        surface = LayeredSurface(scale=2.0, amplitude=10.0, offset=1.0)
        expected = self.noise.get((0.8, 1.8)) * 10.0 + 1.0
        assert surface.evaluate((0.4, 0.9), self.noise) == pytest.approx(expected)

    def test_ridged_deterministic(self):
        """Test ridged surface evaluation."""
        surface = RidgedSurface(scale=16.0, amplitude=60.0, offset=40.0)
        first = surface.evaluate((0.1, 0.2), self.noise)
        assert first == surface.evaluate((0.1, 0.2), self.noise)
        assert -200.0 < first < 300.0
