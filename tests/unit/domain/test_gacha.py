"""
Unit Tests for GachaService
===========================

Test Coverage
-------------
- Rarity draw distribution over a large seeded sample
- Single and batch pull economy (costs, insufficient coins)
- Duplicate handling (counts, is_new flags)
- Evolution: copy consumption, bonus merging, retained source rows

Testing Strategy
----------------
- Real catalog and config, seeded ``random.Random``
- Mocked event bus
"""

import random
from collections import Counter

import pytest

from hairroot.modules.catalog.models import Rarity
from hairroot.modules.shared.exceptions import (
    InsufficientResourcesError,
    InvalidEvolutionError,
    ValidationError,
)


def _set_coins(state, coins):
    with state.transaction() as draft:
        draft.coins = coins


# ============================================================================
# DRAWS
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestDraws:
    """Test rarity selection."""

    def test_distribution_converges_to_rates(self, gacha):
        """Test that 100k seeded draws land near the configured rates."""
        # Arrange
        rng = random.Random(42)
        samples = 100_000

        # Act
        counts = Counter(gacha.draw_rarity(rng) for _ in range(samples))

        # Assert
        expected = {
            Rarity.COMMON: (0.499, 0.01),
            Rarity.UNCOMMON: (0.30, 0.01),
            Rarity.RARE: (0.14, 0.01),
            Rarity.EPIC: (0.05, 0.005),
            Rarity.LEGENDARY: (0.01, 0.002),
            Rarity.COSMIC: (0.001, 0.0006),
        }
        for rarity, (rate, tolerance) in expected.items():
            assert abs(counts[rarity] / samples - rate) < tolerance, rarity

    def test_boss_never_drawn(self, gacha):
        """Test that boss-only creatures are never pulled."""
        rng = random.Random(7)

        drawn = {gacha.draw(rng).id for _ in range(20_000)}

        assert 53 not in drawn

    def test_extreme_rolls(self, gacha, mocker):
        """Test the boundaries of the cumulative table."""
        # Arrange
        low = mocker.Mock()
        low.random.return_value = 0.0
        high = mocker.Mock()
        high.random.return_value = 0.9999999

        # Act / Assert
        assert gacha.draw_rarity(low) is Rarity.COSMIC
        assert gacha.draw_rarity(high) is Rarity.COMMON


# ============================================================================
# PULLS
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestPulls:
    """Test the pull economy."""

    def test_single_pull_costs_ten(self, gacha, state):
        """Test a single pull from the initial 100 coins."""
        # Act
        result = gacha.pull_single(state)

        # Assert
        assert result is not None
        assert result.is_new is True
        assert state.state.coins == 90
        assert state.state.owns(result.definition.id)

    def test_single_pull_without_coins_is_noop(self, gacha, state):
        """Test that an unaffordable pull changes nothing."""
        # Arrange
        _set_coins(state, 9)
        before = state.export_state()

        # Act
        result = gacha.pull_single(state)

        # Assert
        assert result is None
        assert state.export_state() == before

    def test_batch_pull_uses_discount(self, gacha, state):
        """Test that ten pulls cost 90 coins."""
        # Act
        results = gacha.pull_batch(state)

        # Assert
        assert len(results) == 10
        assert state.state.coins == 10
        total = sum(h.count for h in state.state.collection)
        assert total == 10

    def test_batch_duplicates_report_running_counts(self, gacha, state, mocker):
        """Test that duplicates inside one batch count up and are not new."""
        # Arrange
        only = gacha.catalog.require(1)
        mocker.patch.object(gacha, "draw", return_value=only)

        # Act
        results = gacha.pull_batch(state, 3)

        # Assert
        assert [r.holding.count for r in results] == [1, 2, 3]
        assert [r.is_new for r in results] == [True, False, False]
        assert state.state.find(1).count == 3

    @pytest.mark.parametrize("n, cost", [(10, 90), (1, 9), (5, 45), (3, 27), (7, 63), (20, 180)])
    def test_batch_cost(self, gacha, n, cost):
        """Test pro-rated batch costs."""
        assert gacha.batch_cost(n) == cost

    def test_batch_without_coins_is_empty(self, gacha, state):
        """Test that an unaffordable batch changes nothing."""
        _set_coins(state, 89)

        assert gacha.pull_batch(state) == []
        assert state.state.coins == 89
        assert state.state.collection == []

    def test_require_pull_raises(self, gacha, state):
        """Test the raising variant."""
        _set_coins(state, 5)

        with pytest.raises(InsufficientResourcesError) as exc_info:
            gacha.require_pull(state)

        assert exc_info.value.details["deficit"] == 5

    @pytest.mark.parametrize("n", [0, -3])
    def test_require_pull_rejects_bad_count(self, gacha, state, n):
        """Test that a non-positive pull count is a validation error."""
        with pytest.raises(ValidationError):
            gacha.require_pull(state, n)

        assert state.state.coins == 100

    def test_pull_event_published_after_commit(self, gacha, state, mock_event_bus):
        """Test that the gacha.pulled event is published."""
        gacha.pull_single(state)

        names = [c.args[0] for c in mock_event_bus.publish.call_args_list]
        assert "gacha.pulled" in names
        assert "economy.coins_changed" in names


# ============================================================================
# EVOLUTION
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestEvolution:
    """Test duplicate-based evolution."""

    def test_evolve_consumes_ten_copies(self, gacha, state, own):
        """Test evolving creature 1 into creature 11."""
        # Arrange
        own(1, count=10)

        # Act
        target = gacha.evolve(state, 1)

        # Assert
        assert target is not None
        assert target.creature_id == 11
        assert target.count == 1
        assert target.evolution_bonus == 1
        assert target.skill_bonus == 1
        source = state.state.find(1)
        assert source is not None
        assert source.count == 0

    def test_evolve_requires_enough_copies(self, gacha, state, own):
        """Test that nine copies are not enough."""
        own(1, count=9)

        assert gacha.can_evolve(state, 1) is False
        assert gacha.evolve(state, 1) is None
        assert state.state.find(1).count == 9

    def test_evolve_without_target(self, gacha, state, own):
        """Test that creatures without evolves_to cannot evolve."""
        own(51, count=10)

        with pytest.raises(InvalidEvolutionError):
            gacha.require_evolution(state, 51)

    def test_bonus_merges_with_existing_target(self, gacha, state, own):
        """Test that an owned target keeps the larger bonus."""
        # Arrange
        own(1, count=10)
        own(11)
        with state.transaction() as draft:
            draft.find(11).evolution_bonus = 3
            draft.find(11).skill_bonus = 2

        # Act
        target = gacha.evolve(state, 1)

        # Assert
        assert target.count == 2
        assert target.evolution_bonus == 3
        assert target.skill_bonus == 2

    def test_bonus_capped_at_three(self, gacha, state, own):
        """Test the evolution bonus cap."""
        own(1, count=10)
        with state.transaction() as draft:
            draft.find(1).evolution_bonus = 3
            draft.find(1).skill_bonus = 3

        preview = gacha.evolution_preview(state, 1)

        assert preview.evolution_bonus == 3
        assert preview.skill_bonus == 3
        assert preview.copies_required == 10
