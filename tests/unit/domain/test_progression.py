"""
Unit Tests for ProgressionService
=================================

Test Coverage
-------------
- Level curves and exp application (multi-level, cap)
- Level-derived stat, skill and hp scaling
- Training costs and rejections
"""

import pytest

from hairroot.modules.catalog.models import Rarity, StatBlock
from hairroot.modules.state.models import CollectedCreature


# ============================================================================
# LEVEL CURVE
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestLevelCurve:
    """Test exp thresholds and level-ups."""

    def test_common_curve(self, progression):
        """Test the shipped common curve."""
        assert progression.level_up_curve(Rarity.COMMON)[:4] == [0, 100, 250, 500]

    def test_exact_threshold_levels_up(self, progression):
        """Test that reaching the threshold levels up with 0 exp left."""
        assert progression.apply_exp(Rarity.COMMON, 1, 0, 100) == (2, 0)

    def test_multiple_levels_in_one_grant(self, progression):
        """Test a grant spanning several thresholds."""
        # 100 leaves level 1, 250 leaves level 2, 45 remain at level 3
        assert progression.apply_exp(Rarity.COMMON, 1, 0, 395) == (3, 45)

    def test_cap_discards_overflow(self, progression):
        """Test that exp never banks past the level cap."""
        assert progression.apply_exp(Rarity.COMMON, 9, 0, 50_000) == (10, 0)
        assert progression.apply_exp(Rarity.COMMON, 10, 0, 100) == (10, 0)

    def test_grant_exp_mutates_holding(self, progression, catalog):
        """Test grant_exp on a collected creature."""
        # Arrange
        holding = CollectedCreature(creature_id=1, definition=catalog.require(1))

        # Act
        levels = progression.grant_exp(holding, 120)

        # Assert
        assert levels == 1
        assert (holding.level, holding.exp) == (2, 20)

    def test_exp_to_next_level(self, progression):
        """Test the remaining-exp helper."""
        assert progression.exp_to_next_level(Rarity.RARE, 1, 50) == 100
        assert progression.exp_to_next_level(Rarity.RARE, 10) == 0


# ============================================================================
# SCALING
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestScaling:
    """Test level-derived multipliers."""

    def test_level_one_uses_base_stats(self, progression, catalog):
        """Test that level 1 leaves stats unchanged."""
        definition = catalog.require(1)

        assert progression.effective_stats(definition, 1) == StatBlock(10, 15, 8)

    def test_stats_floor_after_scaling(self, progression, catalog):
        """Test 15 % per level growth, floored."""
        definition = catalog.require(1)

        # factor 1.15: 11.5, 17.25, 9.2
        assert progression.effective_stats(definition, 2) == StatBlock(11, 17, 9)

    def test_stats_monotonic_in_level(self, progression, catalog):
        """Test that no stat ever drops when leveling."""
        for definition in catalog.all():
            previous = progression.effective_stats(definition, 1)
            for level in range(2, 11):
                current = progression.effective_stats(definition, level)
                assert current.power >= previous.power
                assert current.speed >= previous.speed
                assert current.grip >= previous.grip
                previous = current

    def test_skill_multiplier(self, progression):
        """Test level and rarity scaling of skill damage."""
        assert progression.skill_power_multiplier(Rarity.COMMON, 1) == pytest.approx(1.0)
        assert progression.skill_power_multiplier(Rarity.LEGENDARY, 6) == pytest.approx(1.4 * 1.2)

    def test_normal_attack_and_defense(self, progression):
        """Test built-in skill values."""
        assert progression.normal_attack_damage(Rarity.COMMON, 1) == 15
        assert progression.normal_attack_damage(Rarity.COSMIC, 10) == 52
        assert progression.normal_defense_reduction(Rarity.COSMIC, 10) == 52
        assert progression.normal_defense_reduction(Rarity.COMMON, 1) == 15

    def test_max_hp(self, progression):
        """Test hp = 100 + power + grip."""
        assert progression.max_hp(StatBlock(power=50, speed=99, grip=30)) == 180


# ============================================================================
# TRAINING
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestTraining:
    """Test coin-for-exp training."""

    @pytest.mark.parametrize("method, exp, cost", [("light", 20, 5), ("normal", 65, 15), ("intense", 200, 40)])
    def test_training_methods(self, progression, state, own, method, exp, cost):
        """Test each method's price and exp."""
        # Arrange
        own(31)

        # Act
        holding = progression.train(state, 31, method)

        # Assert
        assert holding is not None
        assert holding.exp == exp
        assert state.state.coins == 100 - cost

    def test_unknown_method(self, progression, state, own):
        """Test that an unknown method is rejected."""
        own(1)

        assert progression.train(state, 1, "extreme") is None
        assert state.state.coins == 100

    def test_max_level_rejected(self, progression, state, own):
        """Test that capped creatures cannot train."""
        own(1, level=10)

        assert progression.train(state, 1, "light") is None
        assert state.state.coins == 100

    def test_insufficient_coins(self, progression, state, own):
        """Test that training without coins changes nothing."""
        own(1)
        with state.transaction() as draft:
            draft.coins = 39

        assert progression.train(state, 1, "intense") is None
        assert state.state.find(1).exp == 0
        assert state.state.coins == 39

    def test_not_owned(self, progression, state):
        """Test training a creature that is not in the collection."""
        assert progression.train(state, 1, "light") is None
