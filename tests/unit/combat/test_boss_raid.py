"""
Unit Tests for the Boss Raid
============================

Test Coverage
-------------
- PartyTactics decision order
- Controlled participant hand-off
- Instant-kill immunity of the boss
- Full raid built by BattleService and settled once
"""

import pytest

from hairroot.modules.catalog.models import SkillType
from hairroot.modules.combat.engine import BattleOutcome, BattlePhase
from hairroot.modules.combat.modes.boss_raid import BossRaidBattle, PartyTactics
from hairroot.modules.combat.shared.effects import apply_dot
from tests.conftest import make_skill

STRIKE = make_skill("test-strike", SkillType.ATTACK, damage=100, cooldown=2)
NORMAL = make_skill("normal-attack", SkillType.ATTACK, damage=50, cooldown=0)
GUARD = make_skill("normal-defense", SkillType.DEFENSE, damage=0, cooldown=0)
HEAL = make_skill("team-heal", SkillType.TEAM_HEAL, damage=0, cooldown=3)
END_WORLD = make_skill("end-world", SkillType.SPECIAL, damage=0, cooldown=0)

BOSS_ID = 999
PARTY_IDS = [31, 32, 50, 51, 52]


@pytest.fixture
def raid_factory(make_participant, executor, rng):
    """Build a started raid from per-member skill lists."""

    def _build(*member_skills, boss_hp=5000):
        party = [
            make_participant(i, team=0, is_npc=i != 0, creature_id=i + 1, skills=skills)
            for i, skills in enumerate(member_skills)
        ]
        boss = make_participant(BOSS_ID, team=1, hp=boss_hp, skills=[GUARD])
        boss.immune_to_instant_kill = True
        battle = BossRaidBattle(party, boss, executor, rng, human_id=0)
        battle.start()
        return battle

    return _build


@pytest.fixture
def scripted_rng(mocker):
    """Rng double: never rolls a defensive stance, always picks the first option."""
    rng = mocker.Mock()
    rng.random.return_value = 0.9
    rng.choice.side_effect = lambda seq: list(seq)[0]
    return rng


@pytest.mark.unit
@pytest.mark.combat
class TestPartyTactics:
    """Test auto-controlled party member choices."""

    def test_heals_wounded_ally(self, raid_factory, executor, scripted_rng):
        """Test that a ready team heal is used when an ally is under half hp."""
        # Arrange
        battle = raid_factory([STRIKE], [HEAL, STRIKE])
        hurt = battle.participant(0)
        hurt.take_damage(hurt.max_hp - hurt.max_hp // 3)

        # Act
        choice = PartyTactics().choose(executor, battle, battle.participant(1), scripted_rng)

        # Assert
        assert choice == ("team-heal", ())

    def test_defends_when_low(self, raid_factory, executor, scripted_rng):
        """Test that a wounded member picks its first defensive skill."""
        # Arrange
        battle = raid_factory([STRIKE], [STRIKE, GUARD])
        member = battle.participant(1)
        member.take_damage(member.max_hp - 10)

        # Act
        choice = PartyTactics().choose(executor, battle, member, scripted_rng)

        # Assert
        assert choice == ("normal-defense", ())

    def test_prefers_skill_over_normal_attack(self, raid_factory, executor, scripted_rng):
        """Test the offensive pick at full hp."""
        battle = raid_factory([STRIKE], [NORMAL, GUARD, STRIKE])

        choice = PartyTactics().choose(executor, battle, battle.participant(1), scripted_rng)

        assert choice == ("test-strike", (BOSS_ID,))

    def test_falls_back_to_normal_attack(self, raid_factory, executor, scripted_rng):
        """Test the fallback when nothing else is ready."""
        # Arrange
        battle = raid_factory([STRIKE], [NORMAL, STRIKE])
        member = battle.participant(1)
        member.start_cooldown(STRIKE)

        # Act
        choice = PartyTactics().choose(executor, battle, member, scripted_rng)

        # Assert
        assert choice == ("normal-attack", (BOSS_ID,))

    def test_random_defensive_stance(self, raid_factory, executor, scripted_rng):
        """Test the configured chance of a defensive move at full hp."""
        # Arrange
        scripted_rng.random.return_value = 0.1
        battle = raid_factory([STRIKE], [STRIKE, GUARD])

        # Act
        choice = PartyTactics(defend_chance=0.25).choose(
            executor, battle, battle.participant(1), scripted_rng
        )

        # Assert
        assert choice == ("normal-defense", ())


@pytest.mark.unit
@pytest.mark.combat
class TestRaidFlow:
    """Test raid-specific battle behavior."""

    def test_control_passes_to_next_member(self, raid_factory):
        """Test that the first living party member is controlled."""
        # Arrange
        battle = raid_factory([GUARD], [GUARD])

        # Act
        battle.participant(0).take_damage(9999)
        battle.collect_eliminations()

        # Assert
        assert battle.controlled_participant().id == 1

    def test_boss_immune_to_instant_kill(self, raid_factory):
        """Test that end-world does nothing to the boss."""
        # Arrange
        battle = raid_factory([END_WORLD, GUARD])

        # Act
        result = battle.act("end-world", [BOSS_ID])

        # Assert
        assert result.accepted is True
        assert battle.boss.hp == 5000
        assert any(e.event_type == "immune" for e in result.entries)

    def test_party_wipe_is_a_loss(self, raid_factory):
        """Test the loss outcome and that no creature is granted."""
        # Arrange
        battle = raid_factory([GUARD])
        member = battle.participant(0)
        member.take_damage(member.hp - 1)
        apply_dot(member, "burn", 10, 2, source_id=BOSS_ID)

        # Act
        battle.act("normal-defense")

        # Assert
        assert battle.phase is BattlePhase.FINISHED
        result = battle.result()
        assert result.outcome is BattleOutcome.LOSE
        assert result.reward_creature_id is None
        assert result.details["bossHp"] == 5000


@pytest.mark.unit
@pytest.mark.combat
class TestServiceBuiltRaid:
    """Test BattleService.create_boss_raid end to end."""

    @pytest.mark.parametrize(
        "party",
        [
            PARTY_IDS[:4],
            PARTY_IDS + [1],
            [31, 31, 32, 50, 51],
        ],
    )
    def test_invalid_party(self, battles, own, state, party):
        """Test that wrong sizes and duplicates build nothing."""
        own(1, *PARTY_IDS)

        assert battles.create_boss_raid(state, party) is None

    def test_unowned_member(self, battles, own, state):
        """Test that every member must be in the collection."""
        own(*PARTY_IDS[:4])

        assert battles.create_boss_raid(state, PARTY_IDS) is None

    def test_raid_setup(self, battles, own, state):
        """Test boss hp, multipliers and party scaling."""
        # Arrange
        own(*PARTY_IDS, level=10)

        # Act
        battle = battles.create_boss_raid(state, PARTY_IDS)

        # Assert
        assert battle.boss.definition.id == 53
        assert battle.boss.max_hp == 5000
        assert battle.boss.immune_to_instant_kill is True
        assert battle.boss.damage_multipliers["normal-attack"] == 1.7
        assert [p.creature_id for p in battle.party] == PARTY_IDS
        assert battle.executor.cooldown_extra == 1

    def test_victory_grants_boss_once(self, battles, rewards, own, state, config):
        """Test a won raid: coins, exp and the boss creature, settled once."""
        # Arrange
        config.set("combat.boss_raid.boss_hp", {53: 300})
        own(*PARTY_IDS, level=10)
        battle = battles.create_boss_raid(state, PARTY_IDS)
        battle.start()

        # Act
        while battle.accepting_actions and battle.round < battle.max_rounds:
            actor = battle.controlled_participant()
            skill_id, targets = battle.tactics.choose(battle.executor, battle, actor, battle.rng)
            battle.act(skill_id, targets)
        granted = rewards.settle(battle)
        again = rewards.settle(battle)

        # Assert
        assert battle.result().won is True
        assert granted.coins == 1000
        assert granted.granted_creature_id == 53
        assert set(granted.exp) == set(PARTY_IDS)
        assert state.state.coins == 1100
        assert state.state.find(53).count == 1
        assert again is None
