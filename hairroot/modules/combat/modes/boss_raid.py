"""
Boss Raid
=========

Purpose
-------
Five of the player's creatures against one boss with a large fixed hp pool.

Round Flow
----------
1. The first living party member is the controlled participant (``act``)
2. The other living members auto-act using ``PartyTactics``
3. The boss acts once, choosing a random ready skill and random targets
4. End-of-turn upkeep, then: boss at 0 hp -> win, party wiped -> loss

Party Tactics
-------------
- A member with a ready team heal heals when any ally is under the heal
  threshold (50 % hp)
- Under the defend threshold a member uses its first ready defense/dodge
- Otherwise a 25 % chance of a random defensive skill
- Otherwise the first ready attack, then aoe, then special skill, falling
  back to the normal attack
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set, Tuple

from hairroot.modules.catalog.models import Skill, SkillType
from hairroot.modules.combat.engine import (
    Battle,
    BattleMode,
    BattleOutcome,
    BattlePhase,
    BattleResult,
    SkillExecutor,
    choose_targets,
    pick_random_action,
)
from hairroot.modules.combat.shared.participant import BattleParticipant

_OFFENSIVE_ORDER = (SkillType.ATTACK, SkillType.AOE, SkillType.SPECIAL)
_DEFENSIVE_TYPES = (SkillType.DEFENSE, SkillType.DODGE)


@dataclass(frozen=True)
class PartyTactics:
    heal_threshold: float = 0.5
    defend_threshold: float = 0.5
    defend_chance: float = 0.25

    def choose(
        self,
        executor: SkillExecutor,
        battle: Battle,
        member: BattleParticipant,
        rng: random.Random,
    ) -> Tuple[str, Tuple[int, ...]]:
        ready = member.available_skills()
        allies = battle.allies_of(member)
        enemies = battle.enemies_of(member)

        heal = next((s for s in ready if s.type is SkillType.TEAM_HEAL), None)
        if heal is not None and any(a.hp / a.max_hp < self.heal_threshold for a in allies):
            return heal.id, ()

        defensive = [s for s in ready if s.type in _DEFENSIVE_TYPES]
        if defensive and member.hp / member.max_hp < self.defend_threshold:
            return defensive[0].id, ()
        if defensive and rng.random() < self.defend_chance:
            return rng.choice(defensive).id, ()

        skill = self._offensive(executor, ready, member)
        return skill.id, choose_targets(executor, skill, enemies, rng)

    @staticmethod
    def _offensive(
        executor: SkillExecutor, ready: Sequence[Skill], member: BattleParticipant
    ) -> Skill:
        for skill_type in _OFFENSIVE_ORDER:
            match = next(
                (s for s in ready if s.type is skill_type and s.id != executor.normal_attack_id),
                None,
            )
            if match is not None:
                return match
        fallback = member.skill(executor.normal_attack_id)
        assert fallback is not None
        return fallback


class BossRaidBattle(Battle):
    mode = BattleMode.BOSS_RAID

    def __init__(
        self,
        party: Sequence[BattleParticipant],
        boss: BattleParticipant,
        *args,
        tactics: Optional[PartyTactics] = None,
        grant_boss_creature: bool = True,
        **kwargs,
    ) -> None:
        super().__init__([*party, boss], *args, **kwargs)
        self.boss_id = boss.id
        self.tactics = tactics or PartyTactics()
        self.grant_boss_creature = grant_boss_creature

    @property
    def boss(self) -> BattleParticipant:
        boss = self.participant(self.boss_id)
        assert boss is not None
        return boss

    @property
    def party(self) -> List[BattleParticipant]:
        return [p for p in self.participants if p.id != self.boss_id]

    def controlled_participant(self) -> Optional[BattleParticipant]:
        return next((p for p in self.party if p.is_alive), None)

    # ------------------------------------------------------------------
    # Mode hooks
    # ------------------------------------------------------------------

    def _auto_actions(self, acted: Set[int]) -> None:
        assert self.executor is not None
        for member in self.party:
            if self._decided():
                return
            if member.id in acted or not member.is_alive:
                continue
            skill_id, target_ids = self.tactics.choose(self.executor, self, member, self.rng)
            self.auto_act(member, skill_id, target_ids)

        boss = self.boss
        if self._decided() or not boss.is_alive:
            return
        skill_id, target_ids = pick_random_action(self.executor, self, boss, self.rng)
        self.auto_act(boss, skill_id, target_ids)

    def _decided(self) -> bool:
        return not self.boss.is_alive or not any(p.is_alive for p in self.party)

    def result(self) -> Optional[BattleResult]:
        if self.phase is not BattlePhase.FINISHED:
            return None
        won = not self.boss.is_alive
        return BattleResult(
            battle_id=self.battle_id,
            mode=self.mode,
            outcome=BattleOutcome.WIN if won else BattleOutcome.LOSE,
            creature_ids=tuple(p.creature_id for p in self.party if p.creature_id is not None),
            rounds=self.round,
            reward_creature_id=(
                self.boss.definition.id if won and self.grant_boss_creature else None
            ),
            details={"bossHp": self.boss.hp, "bossMaxHp": self.boss.max_hp},
        )
