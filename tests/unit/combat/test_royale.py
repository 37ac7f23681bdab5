"""
Unit Tests for the Solo Battle Royale
=====================================

Test Coverage
-------------
- Placement follows elimination order
- Winning by last one standing
- Spectating after the human is eliminated
- Battles built by BattleService
"""

import pytest

from hairroot.modules.catalog.models import SkillType
from hairroot.modules.combat.engine import BattleOutcome, BattlePhase
from hairroot.modules.combat.modes.royale import RoyaleBattle
from hairroot.modules.combat.shared.effects import apply_dot
from tests.conftest import make_skill

STRIKE = make_skill("test-strike", SkillType.ATTACK, damage=100, cooldown=2)
JAB = make_skill("jab", SkillType.ATTACK, damage=100, cooldown=0)
GUARD = make_skill("normal-defense", SkillType.DEFENSE, damage=0, cooldown=0)


@pytest.fixture
def royale(make_participant, executor, rng):
    """Human plus three defending NPCs; NPCs 1 and 2 are fragile."""
    human = make_participant(0, is_npc=False, creature_id=7, skills=[STRIKE, JAB, GUARD])
    npcs = [
        make_participant(1, hp=100, skills=[GUARD]),
        make_participant(2, hp=100, skills=[GUARD]),
        make_participant(3, hp=100, skills=[GUARD]),
    ]
    battle = RoyaleBattle([human, *npcs], executor, rng, human_id=0)
    battle.start()
    return battle


@pytest.mark.unit
@pytest.mark.combat
class TestPlacement:
    """Test placement bookkeeping."""

    def test_first_out_places_last(self, royale):
        """Test that the first elimination takes the last place."""
        royale.act("test-strike", [1])

        assert royale.elimination_order == [1]
        assert royale.placement_of(1) == 4
        assert royale.placement_of(2) is None
        assert royale.result() is None

    def test_last_one_standing_wins(self, royale):
        """Test winning the royale."""
        # Act
        royale.act("test-strike", [1])
        royale.act("jab", [2])
        royale.act("jab", [3])

        # Assert
        assert royale.phase is BattlePhase.FINISHED
        assert royale.standings() == [0, 3, 2, 1]
        result = royale.result()
        assert result.outcome is BattleOutcome.WIN
        assert result.placement == 1
        assert result.creature_ids == (7,)
        assert result.details["eliminationOrder"] == [1, 2, 3]

    def test_eight_way_placements_follow_elimination_order(
        self, make_participant, executor, rng
    ):
        """Test that seven eliminations in a known order place 8th down to 2nd."""
        # Arrange
        human = make_participant(0, is_npc=False, creature_id=7, skills=[JAB, GUARD])
        npcs = [make_participant(i, hp=100, skills=[GUARD]) for i in range(1, 8)]
        battle = RoyaleBattle([human, *npcs], executor, rng, human_id=0)
        battle.start()
        order = [5, 2, 7, 1, 6, 3, 4]

        # Act
        for target in order:
            battle.act("jab", [target])

        # Assert
        assert battle.elimination_order == order
        assert [battle.placement_of(pid) for pid in order] == [8, 7, 6, 5, 4, 3, 2]
        assert battle.placement_of(0) == 1
        assert battle.standings() == [0, *reversed(order)]
        assert battle.result().placement == 1

    def test_human_eliminated_enters_result_phase(self, royale):
        """Test that the human's placement is final once eliminated."""
        # Arrange
        human = royale.human
        human.take_damage(human.hp - 1)
        apply_dot(human, "burn", 10, 2, source_id=None)

        # Act
        royale.act("normal-defense")

        # Assert
        assert royale.phase is BattlePhase.RESULT
        assert royale.outcome_final is True
        result = royale.result()
        assert result.placement == 4
        assert result.outcome is BattleOutcome.LOSE
        assert royale.abandon() is False

    def test_spectating_advances_rounds(self, royale):
        """Test advance() while the human is out."""
        royale.human.take_damage(9999)
        royale.collect_eliminations()
        royale.phase = BattlePhase.RESULT
        rounds = royale.round

        assert royale.advance() is True
        assert royale.round == rounds + 1


@pytest.mark.unit
@pytest.mark.combat
class TestServiceBuiltRoyale:
    """Test BattleService.create_royale."""

    def test_requires_selection(self, battles, state):
        """Test that no selected creature means no battle."""
        assert battles.create_royale(state) is None

    def test_eight_participants(self, battles, state, own):
        """Test the human plus seven NPCs."""
        # Arrange
        own(1, level=3)
        state.select_creature(1)

        # Act
        battle = battles.create_royale(state)

        # Assert
        assert len(battle.participants) == 8
        assert battle.human.creature_id == 1
        assert battle.human.level == 3
        assert [p.id for p in battle.participants[1:]] == list(range(101, 108))
        assert len({p.team for p in battle.participants}) == 8
        assert battle.builtin_ids == ("normal-attack", "normal-defense")
        assert battle.phase is BattlePhase.SETUP
