"""
Unit Tests for BattleService
============================

Test Coverage
-------------
- Battles are only built for a selected, owned creature
- Opponent scaling by rank
- Boss roster and boss configuration
"""

import pytest

from hairroot.modules.combat.engine import BattleMode
from hairroot.modules.combat.modes.duel import DuelBattle
from hairroot.modules.rank.models import RankMode
from hairroot.modules.shared.exceptions import NotFoundError


@pytest.mark.unit
@pytest.mark.combat
class TestBuilders:
    """Test battle construction from the game state."""

    @pytest.mark.parametrize("builder", ["create_duel", "create_royale", "create_team_royale"])
    def test_no_selection(self, battles, state, own, builder):
        """Test that nothing is built without a selected creature."""
        own(1)

        assert getattr(battles, builder)(state) is None

    def test_duel(self, battles, state, own):
        """Test the duel opponent and rules."""
        # Arrange
        own(4, level=2)
        state.select_creature(4)

        # Act
        duel = battles.create_duel(state)

        # Assert
        assert isinstance(duel, DuelBattle)
        assert duel.human.creature_id == 4
        assert duel.opponent.id == 101
        assert duel.opponent.is_npc is True
        assert duel.rules.ticks == 100

    def test_builtin_ids(self, battles):
        """Test the built-in skill ids NPCs skip when choosing randomly."""
        assert battles.builtin_ids == ("normal-attack", "normal-defense")

    def test_executor_settings(self, battles):
        """Test executor defaults and the raid cooldown extension."""
        executor = battles.executor(cooldown_extra=1)

        assert executor.cooldown_extra == 1
        assert executor.normal_attack_id == "normal-attack"
        assert executor.rng is battles.rng


@pytest.mark.unit
@pytest.mark.combat
class TestOpponentScaling:
    """Test NPC strength from the player's rank."""

    def test_fresh_player(self, battles, state):
        """Test bronze III opponents at multiplier 1.0."""
        assert battles.opponent_scaling(state, BattleMode.ROYALE) == ("bronze", 1.0)

    def test_uses_mode_rank(self, battles, state):
        """Test that each mode reads its own ladder."""
        # Arrange
        with state.transaction() as draft:
            draft.set_rank_points(RankMode.ROYALE, 400)

        # Act
        tier, multiplier = battles.opponent_scaling(state, BattleMode.ROYALE)

        # Assert
        assert tier == "silver"
        assert multiplier == pytest.approx(1.2)
        assert battles.opponent_scaling(state, BattleMode.DUEL) == ("bronze", 1.0)

    def test_boss_raid_unranked(self, battles, state):
        """Test that raids ignore rank."""
        with state.transaction() as draft:
            draft.set_rank_points(RankMode.TEAM_ROYALE, 2500)

        assert battles.opponent_scaling(state, BattleMode.BOSS_RAID) == ("bronze", 1.0)


@pytest.mark.unit
@pytest.mark.combat
class TestBossRoster:
    """Test boss configuration lookups."""

    def test_roster(self, battles):
        """Test the shipped roster."""
        assert [b.id for b in battles.boss_roster()] == [53]

    def test_unknown_boss_skipped(self, battles, config):
        """Test that unknown roster ids are dropped."""
        config.set("combat.boss_raid.bosses", [777, 53])

        assert [b.id for b in battles.boss_roster()] == [53]

    def test_boss_hp_default(self, battles):
        """Test configured and fallback boss hp."""
        assert battles.boss_hp(53) == 5000
        assert battles.boss_hp(1) == 5000

    def test_boss_skills(self, battles):
        """Test the raid skill set."""
        ids = [s.id for s in battles.boss_skills()]

        assert ids[:2] == ["normal-attack", "normal-defense"]
        assert "absolute-zero-raid" in ids

    def test_empty_roster(self, battles, state, own, config):
        """Test the error when no boss is configured."""
        # Arrange
        config.set("combat.boss_raid.bosses", [])
        own(31, 32, 50, 51, 52)

        # Act / Assert
        with pytest.raises(NotFoundError):
            battles.create_boss_raid(state, [31, 32, 50, 51, 52])
