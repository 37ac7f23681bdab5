"""
Unit Tests for the Team Battle Royale
=====================================

Test Coverage
-------------
- Team elimination and team placement
- The human's outcome stays open while allies survive
- Battles built by BattleService (4 teams of 3)
"""

import pytest

from hairroot.modules.catalog.models import SkillType
from hairroot.modules.combat.engine import BattleOutcome, BattlePhase
from hairroot.modules.combat.modes.team_royale import TeamRoyaleBattle
from hairroot.modules.combat.shared.effects import apply_dot
from tests.conftest import make_skill

JAB = make_skill("jab", SkillType.ATTACK, damage=100, cooldown=0)
GUARD = make_skill("normal-defense", SkillType.DEFENSE, damage=0, cooldown=0)


@pytest.fixture
def teams(make_participant, executor, rng):
    """Team 0: human + ally, team 1: one fragile NPC, team 2: one fragile NPC."""
    participants = [
        make_participant(0, team=0, is_npc=False, creature_id=5, skills=[JAB, GUARD]),
        make_participant(1, team=0, skills=[GUARD]),
        make_participant(2, team=1, hp=100, skills=[GUARD]),
        make_participant(3, team=2, hp=100, skills=[GUARD]),
    ]
    battle = TeamRoyaleBattle(
        participants, executor, rng, human_id=0, team_names=["赤", "青", "緑"]
    )
    battle.start()
    return battle


@pytest.mark.unit
@pytest.mark.combat
class TestTeamPlacement:
    """Test team-level outcomes."""

    def test_allies_are_not_targets(self, teams):
        """Test that teammates cannot be attacked."""
        result = teams.act("jab", [1])

        assert result.accepted is False

    def test_team_elimination_order(self, teams):
        """Test placements as teams drop out."""
        # Act
        teams.act("jab", [2])

        # Assert
        assert teams.team_elimination_order == [1]
        assert teams.team_placement(1) == 3
        assert any(e.event_type == "team_eliminated" for e in teams.log)

        teams.act("jab", [3])
        assert teams.phase is BattlePhase.FINISHED
        assert teams.team_placements() == {0: 1, 1: 3, 2: 2}
        result = teams.result()
        assert result.outcome is BattleOutcome.WIN
        assert result.placement == 1
        assert result.details["team"] == 0

    def test_human_out_with_ally_alive(self, teams):
        """Test that the result waits for the whole team."""
        # Arrange
        human = teams.human
        human.take_damage(human.hp - 1)
        apply_dot(human, "burn", 10, 2, source_id=None)

        # Act
        teams.act("normal-defense")

        # Assert
        assert human.is_eliminated is True
        assert teams.phase is BattlePhase.RESULT
        assert teams.outcome_final is False
        assert teams.result() is None

    def test_team_names(self, teams):
        """Test configured and fallback team names."""
        assert teams.team_name(1) == "青"
        assert teams.team_name(5) == "Team 6"


@pytest.mark.unit
@pytest.mark.combat
class TestServiceBuiltTeamRoyale:
    """Test BattleService.create_team_royale."""

    def test_four_teams_of_three(self, battles, state, own):
        """Test team composition."""
        # Arrange
        own(2)
        state.select_creature(2)

        # Act
        battle = battles.create_team_royale(state)

        # Assert
        assert len(battle.participants) == 12
        assert battle.teams == [0, 1, 2, 3]
        assert all(len(battle.team_members(t)) == 3 for t in battle.teams)
        assert battle.human.team == 0
        assert battle.team_name(0) == "炎チーム"
        assert all(p.id >= 101 for p in battle.participants if p.is_npc)
