"""
Unit Tests for CombatFormulas
=============================

Test Coverage
-------------
- Base damage from skill damage, power and buffs
- Element multiplier applied before defense
- Defense reduction clamping
- Jitter range
"""

import random

import pytest

from hairroot.modules.combat.shared.formulas import DamageInput


@pytest.mark.unit
@pytest.mark.combat
class TestDamage:
    """Test single-hit resolution."""

    def test_neutral_hit(self, formulas):
        """Test 100 damage at 50 power into a neutral element."""
        # Act
        result = formulas.calculate_damage(DamageInput(100, 50, "fire", "light"))

        # Assert
        assert result.base_damage == 150
        assert result.element_multiplier == 1.0
        assert result.final_damage == 150

    def test_element_before_defense(self, formulas):
        """Test a disadvantaged hit into a 30 % guard."""
        # Arrange: 100 damage, 40 power, fire into water, 30 % reduction
        inp = DamageInput(100, 40, "fire", "water", defense_reduction=30)

        # Act
        result = formulas.calculate_damage(inp)

        # Assert
        assert result.base_damage == 98
        assert result.final_damage == 68
        assert result.reduced_by == 30

    def test_advantage_and_buffs(self, formulas):
        """Test buffed power and element advantage."""
        result = formulas.calculate_damage(
            DamageInput(100, 50, "fire", "wind", buffed_power=50)
        )

        assert result.final_damage == 260

    def test_mode_multiplier(self, formulas):
        """Test the boss-raid style damage multiplier."""
        result = formulas.calculate_damage(
            DamageInput(50, 0, "dark", "dark", mode_multiplier=1.7)
        )

        assert result.final_damage == 85

    def test_negative_power_never_heals(self, formulas):
        """Test that a debuffed attacker deals 0, not negative damage."""
        result = formulas.calculate_damage(DamageInput(100, 10, None, None, buffed_power=-200))

        assert result.final_damage == 0

    @pytest.mark.parametrize("reduction, expected", [(0, 100), (100, 0), (150, 0), (-20, 100)])
    def test_defense_clamped(self, formulas, reduction, expected):
        """Test reduction clamping to [0, 100]."""
        assert formulas.apply_defense(100, reduction) == expected

    def test_jitter_range(self, formulas):
        """Test that jitter stays within [0.8, 1.2)."""
        rng = random.Random(0)

        rolls = [formulas.roll_jitter(rng) for _ in range(1000)]

        assert min(rolls) >= 0.8
        assert max(rolls) < 1.2
