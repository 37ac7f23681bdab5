"""
Combat Engine
=============

Purpose
-------
Turn-based battle state machine shared by every mode, and the generic
``SkillExecutor`` that resolves one action.

State Machine
-------------
``setup -> turn_select -> turn_resolve -> win_check -> turn_select | finished``

- ``result``: the human can no longer act but the simulation continues
  (FFA spectating); advance with ``advance()`` / ``run_until_finished()``
- ``abandoned``: cancelled before the outcome was final; never rewarded

Round Flow
----------
1. The controlled participant acts (``act``); a rejected action leaves the
   battle exactly as it was and the caller must choose again
2. Auto-controlled participants act in order (mode hook)
3. ``end_of_turn()``: dot damage, effect decay, cooldown decay
4. Mode-specific win / placement detection

Action Resolution (``SkillExecutor.execute``)
---------------------------------------------
1. Stunned actors skip; no cooldown is consumed
2. Targets are resolved; invalid selections are rejected without mutation
3. The cooldown starts (plus the mode's extra turns)
4. Damage skills hit through interception, element and defense
5. Defense, dodge, team heal and specials go through ``EffectExecutor``

Failure Semantics
-----------------
Gameplay edge cases never raise: they return a rejected ``ActionResult``.
``ActionResult.raise_for_rejection()`` converts one into
``InvalidActionError`` for callers that prefer exceptions.
"""

from __future__ import annotations

import random
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from hairroot.core.logging.logger import get_logger
from hairroot.modules.catalog.models import Skill, SkillType
from hairroot.modules.combat.shared.effects import EffectExecutor, EffectTarget, apply_dot
from hairroot.modules.combat.shared.formulas import CombatFormulas, DamageInput
from hairroot.modules.combat.shared.log import BattleLog, BattleLogEntry
from hairroot.modules.combat.shared.participant import BattleParticipant, EffectType
from hairroot.modules.rank.models import RankMode
from hairroot.modules.shared.exceptions import InvalidActionError
from hairroot.modules.shared.formulas import floor_int

logger = get_logger(__name__)

# Rejection reasons
BATTLE_NOT_ACTIVE = "battle_not_active"
ACTOR_UNAVAILABLE = "actor_unavailable"
UNKNOWN_SKILL = "unknown_skill"
ON_COOLDOWN = "on_cooldown"
INVALID_TARGET = "invalid_target"
NO_TARGETS = "no_targets"
STUNNED = "stunned"


# ============================================================================
# Enums
# ============================================================================


class BattleMode(str, Enum):
    DUEL = "duel"
    ROYALE = "royale"
    TEAM_ROYALE = "team_royale"
    BOSS_RAID = "boss_raid"

    @property
    def rank_mode(self) -> Optional[RankMode]:
        """Rank ladder this mode feeds; boss raids are unranked."""
        return {
            BattleMode.DUEL: RankMode.BATTLE,
            BattleMode.ROYALE: RankMode.ROYALE,
            BattleMode.TEAM_ROYALE: RankMode.TEAM_ROYALE,
        }.get(self)


class BattlePhase(str, Enum):
    SETUP = "setup"
    TURN_SELECT = "turn_select"
    TURN_RESOLVE = "turn_resolve"
    WIN_CHECK = "win_check"
    FINISHED = "finished"
    RESULT = "result"
    ABANDONED = "abandoned"


class BattleOutcome(str, Enum):
    WIN = "win"
    LOSE = "lose"
    DRAW = "draw"


class TargetPolicy(str, Enum):
    NONE = "none"
    SINGLE = "single"
    MULTI = "multi"
    ALL_ENEMIES = "all_enemies"


# ============================================================================
# Results
# ============================================================================


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one attempted action."""

    accepted: bool
    actor_id: Optional[int]
    skill_id: Optional[str]
    reason: Optional[str] = None
    skipped: bool = False
    target_ids: Tuple[int, ...] = ()
    damage: Mapping[int, int] = field(default_factory=dict)
    entries: Tuple[BattleLogEntry, ...] = ()

    @classmethod
    def rejected(
        cls, actor_id: Optional[int], skill_id: Optional[str], reason: str
    ) -> "ActionResult":
        return cls(accepted=False, actor_id=actor_id, skill_id=skill_id, reason=reason)

    @property
    def total_damage(self) -> int:
        return sum(self.damage.values())

    def raise_for_rejection(self) -> "ActionResult":
        if not self.accepted:
            raise InvalidActionError(self.skill_id or "action", self.reason or "rejected")
        return self


@dataclass(frozen=True)
class BattleResult:
    """
    Final outcome from the human player's point of view.

    ``creature_ids`` are the player's collection ids that fought (exp
    recipients); ``placement`` is set for placement-ranked modes.
    """

    battle_id: str
    mode: BattleMode
    outcome: BattleOutcome
    creature_ids: Tuple[int, ...]
    placement: Optional[int] = None
    rounds: int = 0
    reward_creature_id: Optional[int] = None
    details: Mapping[str, object] = field(default_factory=dict)

    @property
    def won(self) -> bool:
        return self.outcome is BattleOutcome.WIN


# ============================================================================
# SkillExecutor
# ============================================================================


class SkillExecutor:
    """
    Resolves a single skill use for any mode.

    Args:
        formulas: Damage formulas (owns the element resolver)
        effects: Defense / dodge / heal / special descriptor executor
        rng: Random source for NPC jitter
        default_max_targets: aoe cap when a skill sets none
        cooldown_extra: turns added to every cooldown (boss raids use 1)
        normal_attack_id: built-in attack that ignores the skill multiplier
    """

    def __init__(
        self,
        formulas: CombatFormulas,
        effects: EffectExecutor,
        rng: random.Random,
        default_max_targets: int = 3,
        cooldown_extra: int = 0,
        normal_attack_id: str = "normal-attack",
    ) -> None:
        self.formulas = formulas
        self.effects = effects
        self.rng = rng
        self.default_max_targets = default_max_targets
        self.cooldown_extra = cooldown_extra
        self.normal_attack_id = normal_attack_id

    # ========================================================================
    # Targeting
    # ========================================================================

    def target_policy(self, skill: Skill) -> TargetPolicy:
        if skill.type in (SkillType.ATTACK, SkillType.DOT):
            return TargetPolicy.SINGLE
        if skill.type is SkillType.AOE:
            return TargetPolicy.MULTI
        if skill.type is SkillType.SPECIAL:
            special = self.effects.special(skill.id)
            if special is None or special.target is EffectTarget.SELF:
                return TargetPolicy.NONE
            if special.target is EffectTarget.SINGLE:
                return TargetPolicy.SINGLE
            return TargetPolicy.ALL_ENEMIES
        return TargetPolicy.NONE

    def max_targets(self, skill: Skill) -> int:
        return skill.max_targets or self.default_max_targets

    def resolve_targets(
        self,
        battle: Battle,
        actor: BattleParticipant,
        skill: Skill,
        target_ids: Sequence[int],
    ) -> Tuple[Optional[List[BattleParticipant]], Optional[str]]:
        """Returns (targets, None) or (None, rejection reason)."""
        policy = self.target_policy(skill)
        if policy is TargetPolicy.NONE:
            return [], None

        enemies = battle.enemies_of(actor)
        if policy is TargetPolicy.ALL_ENEMIES:
            return (enemies, None) if enemies else (None, NO_TARGETS)

        ids = list(dict.fromkeys(target_ids))
        if not ids:
            return None, INVALID_TARGET
        if policy is TargetPolicy.SINGLE and len(ids) != 1:
            return None, INVALID_TARGET
        if policy is TargetPolicy.MULTI and len(ids) > self.max_targets(skill):
            return None, INVALID_TARGET

        by_id = {e.id: e for e in enemies}
        targets = [by_id.get(i) for i in ids]
        if any(t is None for t in targets):
            return None, INVALID_TARGET
        return targets, None  # type: ignore[return-value]

    # ========================================================================
    # Execution
    # ========================================================================

    def skill_damage(self, actor: BattleParticipant, skill: Skill) -> int:
        """Nominal damage after the skill-power multiplier."""
        if skill.id == self.normal_attack_id:
            return skill.damage
        return floor_int(skill.damage * actor.skill_multiplier)

    def execute(
        self,
        battle: Battle,
        actor: BattleParticipant,
        skill_id: str,
        target_ids: Sequence[int] = (),
        auto: bool = False,
    ) -> ActionResult:
        log = battle.log
        start = len(log)

        if not actor.is_alive:
            return ActionResult.rejected(actor.id, skill_id, ACTOR_UNAVAILABLE)
        skill = actor.skill(skill_id)
        if skill is None:
            return ActionResult.rejected(actor.id, skill_id, UNKNOWN_SKILL)

        if actor.is_stunned:
            log.add("stun_skip", f"{actor.name}は行動不能!", actor=actor.id)
            return ActionResult(
                accepted=True,
                actor_id=actor.id,
                skill_id=skill_id,
                reason=STUNNED,
                skipped=True,
                entries=tuple(log.since(start)),
            )

        if not actor.is_ready(skill):
            return ActionResult.rejected(actor.id, skill_id, ON_COOLDOWN)

        targets, reason = self.resolve_targets(battle, actor, skill, target_ids)
        if targets is None:
            return ActionResult.rejected(actor.id, skill_id, reason or INVALID_TARGET)

        actor.start_cooldown(skill, self.cooldown_extra)
        damage: Dict[int, int] = {}

        if skill.type in (SkillType.ATTACK, SkillType.AOE, SkillType.DOT):
            for target in targets:
                if not actor.is_alive:
                    break
                lost = self._hit(battle, actor, skill, target, auto)
                if lost:
                    damage[target.id] = damage.get(target.id, 0) + lost
        elif skill.type is SkillType.DEFENSE:
            self.effects.apply_defense(actor, skill, log)
        elif skill.type is SkillType.DODGE:
            self.effects.apply_dodge(actor, skill, log)
        elif skill.type is SkillType.TEAM_HEAL:
            self.effects.apply_team_heal(actor, skill, battle.allies_of(actor), log)
        elif skill.type is SkillType.SPECIAL:
            damage = self._special(battle, actor, skill, targets)

        return ActionResult(
            accepted=True,
            actor_id=actor.id,
            skill_id=skill.id,
            target_ids=tuple(t.id for t in targets),
            damage=damage,
            entries=tuple(log.since(start)),
        )

    def _special(
        self,
        battle: Battle,
        actor: BattleParticipant,
        skill: Skill,
        targets: List[BattleParticipant],
    ) -> Dict[int, int]:
        special = self.effects.special(skill.id)
        if special is None:
            battle.log.add(
                "special",
                f"{actor.name}の{skill.name}!",
                actor=actor.id,
                skill_id=skill.id,
            )
            return {}
        recipients = [actor] if special.target is EffectTarget.SELF else targets

        def strike(target: BattleParticipant, amount: int) -> int:
            return self._apply_hit(battle, actor, skill, target, amount)

        return self.effects.run_steps(actor, skill, special.steps, recipients, battle.log, strike)

    def _hit(
        self,
        battle: Battle,
        actor: BattleParticipant,
        skill: Skill,
        target: BattleParticipant,
        auto: bool,
    ) -> int:
        if not target.is_alive:
            return 0
        if self.effects.intercept(actor, target, battle.log):
            return 0

        jitter = self.formulas.roll_jitter(self.rng) if auto else 1.0
        result = self.formulas.calculate_damage(
            DamageInput(
                skill_damage=self.skill_damage(actor, skill),
                attacker_power=actor.stats.power,
                buffed_power=actor.buffed_stats.get("power", 0),
                attacker_element=actor.element,
                defender_element=target.element,
                jitter=jitter,
                mode_multiplier=actor.damage_multiplier(skill),
                defense_reduction=target.defense_reduction(),
            )
        )
        lost = target.take_damage(result.final_damage)
        note = ""
        if result.element_multiplier > 1:
            note = " (属性有利!)"
        elif result.element_multiplier < 1:
            note = " (属性不利)"
        battle.log.add(
            skill.type.value,
            f"{actor.name}の{skill.name}! {target.name}に{lost}ダメージ!{note}",
            actor=actor.id,
            target=target.id,
            amount=lost,
            skill_id=skill.id,
            element_multiplier=result.element_multiplier,
            reduced_by=result.reduced_by,
        )

        if skill.type is SkillType.DOT and skill.dot_effect is not None and target.is_alive:
            dot = skill.dot_effect
            apply_dot(target, dot.name, dot.damage, dot.duration, actor.id)
            battle.log.add(
                "dot_applied",
                f"{target.name}に{dot.name}を付与!",
                actor=actor.id,
                target=target.id,
                amount=dot.damage,
                skill_id=skill.id,
            )
        self.effects.apply_on_hit(actor, skill, target, battle.log)
        return lost

    def _apply_hit(
        self,
        battle: Battle,
        actor: BattleParticipant,
        skill: Skill,
        target: BattleParticipant,
        amount: int,
    ) -> int:
        """Flat damage from an effect step: interception and defense still apply."""
        if self.effects.intercept(actor, target, battle.log):
            return 0
        final = self.formulas.apply_defense(amount, target.defense_reduction())
        lost = target.take_damage(final)
        battle.log.add(
            "effect_damage",
            f"{actor.name}の{skill.name}! {target.name}に{lost}ダメージ!",
            actor=actor.id,
            target=target.id,
            amount=lost,
            skill_id=skill.id,
        )
        return lost


# ============================================================================
# NPC action choice
# ============================================================================


def pick_random_action(
    executor: SkillExecutor,
    battle: Battle,
    actor: BattleParticipant,
    rng: random.Random,
    builtin_ids: Sequence[str] = (),
) -> Tuple[str, Tuple[int, ...]]:
    """
    Random available skill (own skills first, built-ins excluded) aimed at
    random living enemies. Falls back to the normal attack.
    """
    enemies = battle.enemies_of(actor)
    pool = [
        s
        for s in actor.available_skills()
        if s.id not in builtin_ids
        and (executor.target_policy(s) is TargetPolicy.NONE or enemies)
    ]
    skill = rng.choice(pool) if pool else actor.skill(executor.normal_attack_id)
    if skill is None:
        return executor.normal_attack_id, ()
    return skill.id, choose_targets(executor, skill, enemies, rng)


def choose_targets(
    executor: SkillExecutor,
    skill: Skill,
    enemies: Sequence[BattleParticipant],
    rng: random.Random,
) -> Tuple[int, ...]:
    policy = executor.target_policy(skill)
    if not enemies or policy in (TargetPolicy.NONE, TargetPolicy.ALL_ENEMIES):
        return ()
    if policy is TargetPolicy.SINGLE:
        return (rng.choice(list(enemies)).id,)
    count = min(executor.max_targets(skill), len(enemies))
    return tuple(t.id for t in rng.sample(list(enemies), count))


# ============================================================================
# Battle
# ============================================================================


class Battle(ABC):
    """
    Base battle: participants, phases, rounds and end-of-turn upkeep.

    Subclasses implement the mode hooks:

    - ``_auto_actions(acted)``: run every auto-controlled actor this round
    - ``_decided()``: True once the overall winner is known
    - ``_human_done()``: True once the human's outcome is fixed
    - ``result()``: the ``BattleResult`` once the human's outcome is fixed
    """

    mode: BattleMode
    max_rounds: int = 200

    def __init__(
        self,
        participants: Sequence[BattleParticipant],
        executor: Optional[SkillExecutor],
        rng: random.Random,
        human_id: Optional[int] = None,
        battle_id: Optional[str] = None,
    ) -> None:
        self.battle_id = battle_id or uuid.uuid4().hex[:12]
        self.participants: List[BattleParticipant] = list(participants)
        self.executor = executor
        self.rng = rng
        self.human_id = human_id
        self.phase = BattlePhase.SETUP
        self.round = 0
        self.log = BattleLog()
        self.elimination_order: List[int] = []
        self.rewards_settled = False

    # ========================================================================
    # Lookups
    # ========================================================================

    def participant(self, participant_id: int) -> Optional[BattleParticipant]:
        return next((p for p in self.participants if p.id == participant_id), None)

    @property
    def human(self) -> Optional[BattleParticipant]:
        if self.human_id is None:
            return None
        return self.participant(self.human_id)

    def living(self) -> List[BattleParticipant]:
        return [p for p in self.participants if p.is_alive]

    def enemies_of(self, actor: BattleParticipant) -> List[BattleParticipant]:
        return [p for p in self.participants if p.is_alive and p.team != actor.team]

    def allies_of(self, actor: BattleParticipant) -> List[BattleParticipant]:
        """Living teammates including ``actor`` itself."""
        return [p for p in self.participants if p.is_alive and p.team == actor.team]

    def controlled_participant(self) -> Optional[BattleParticipant]:
        """The participant the caller's ``act`` drives this round."""
        human = self.human
        return human if human is not None and human.is_alive else None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    @property
    def accepting_actions(self) -> bool:
        return self.phase is BattlePhase.TURN_SELECT

    @property
    def is_over(self) -> bool:
        return self.phase in (BattlePhase.FINISHED, BattlePhase.ABANDONED)

    @property
    def outcome_final(self) -> bool:
        """True once the human's result can no longer change."""
        if self.phase is BattlePhase.FINISHED:
            return True
        return self.phase is BattlePhase.RESULT and self._human_done()

    def start(self) -> None:
        if self.phase is not BattlePhase.SETUP:
            return
        self.log.add(
            "battle_start",
            "バトル開始!",
            participants=[p.id for p in self.participants],
        )
        self.phase = BattlePhase.TURN_SELECT
        logger.info(
            "Battle started",
            extra={
                "battle_id": self.battle_id,
                "mode": self.mode.value,
                "participants": len(self.participants),
            },
        )

    def abandon(self) -> bool:
        """Cancel the battle. Not possible once the human's result is final."""
        if self.is_over or self.outcome_final:
            return False
        self.phase = BattlePhase.ABANDONED
        self.log.add("abandoned", "バトルを中断した")
        logger.info(
            "Battle abandoned",
            extra={"battle_id": self.battle_id, "mode": self.mode.value, "round": self.round},
        )
        return True

    # ========================================================================
    # Rounds
    # ========================================================================

    def act(self, skill_id: str, target_ids: Sequence[int] = ()) -> ActionResult:
        """
        Submit the controlled participant's action and play out the round.

        A rejected action changes nothing; the round only advances when the
        action is accepted (a stunned actor's skipped turn counts).
        """
        actor = self.controlled_participant()
        if not self.accepting_actions or self.executor is None:
            return ActionResult.rejected(actor.id if actor else None, skill_id, BATTLE_NOT_ACTIVE)
        if actor is None:
            return ActionResult.rejected(None, skill_id, ACTOR_UNAVAILABLE)

        self.phase = BattlePhase.TURN_RESOLVE
        self.log.turn = self.round + 1
        result = self.executor.execute(self, actor, skill_id, target_ids, auto=False)
        if not result.accepted:
            self.log.turn = self.round
            self.phase = BattlePhase.TURN_SELECT
            logger.debug(
                "Action rejected",
                extra={
                    "battle_id": self.battle_id,
                    "actor_id": actor.id,
                    "skill_id": skill_id,
                    "reason": result.reason,
                },
            )
            return result

        self.round += 1
        self.collect_eliminations()
        self._finish_round({actor.id})
        return result

    def advance(self) -> bool:
        """
        Play one round without a controlled action (spectating, or when the
        human has been eliminated). Returns False if no round was played.
        """
        if self.phase is not BattlePhase.RESULT or self.executor is None:
            return False
        self.round += 1
        self.log.turn = self.round
        self._finish_round(set())
        return True

    def run_until_finished(self) -> None:
        """Advance spectator rounds until the battle ends or the round cap hits."""
        while self.phase is BattlePhase.RESULT and self.round < self.max_rounds:
            self.advance()
        if self.phase is BattlePhase.RESULT:
            self._force_finish()

    def auto_act(
        self, actor: BattleParticipant, skill_id: str, target_ids: Sequence[int]
    ) -> ActionResult:
        """Resolve an auto-controlled action (with NPC jitter)."""
        assert self.executor is not None
        result = self.executor.execute(self, actor, skill_id, target_ids, auto=True)
        if result.accepted:
            self.collect_eliminations()
        return result

    def _finish_round(self, acted: Set[int]) -> None:
        if not self._decided():
            self._auto_actions(acted)
        self.end_of_turn()
        self._win_check()

    def collect_eliminations(self) -> List[BattleParticipant]:
        """Mark participants at 0 hp as eliminated, in participant order."""
        newly: List[BattleParticipant] = []
        for p in self.participants:
            if not p.is_eliminated and p.hp <= 0:
                p.eliminate(len(self.elimination_order))
                self.elimination_order.append(p.id)
                newly.append(p)
                self.log.add("eliminated", f"{p.name}が脱落!", target=p.id)
        if newly:
            self._on_eliminated(newly)
        return newly

    def end_of_turn(self) -> None:
        """Dot damage, status decay (with stat rollback) and cooldown decay."""
        for p in self.living():
            for effect in [e for e in p.status_effects if e.type is EffectType.DOT]:
                lost = p.take_damage(effect.value)
                self.log.add(
                    "dot",
                    f"{p.name}は{effect.display_name}で{lost}ダメージ!",
                    target=p.id,
                    amount=lost,
                )
        self.collect_eliminations()

        for p in self.participants:
            if p.is_eliminated:
                continue
            for effect in p.decay_effects():
                self.log.add(
                    "effect_expired",
                    f"{p.name}の{effect.display_name}が切れた",
                    target=p.id,
                    effect=effect.name,
                )
            p.tick_cooldowns()

    def _win_check(self) -> None:
        self.phase = BattlePhase.WIN_CHECK
        if self._decided():
            self._finish()
        elif self.controlled_participant() is None:
            self.phase = BattlePhase.RESULT
        else:
            self.phase = BattlePhase.TURN_SELECT

    def _finish(self) -> None:
        self.phase = BattlePhase.FINISHED
        result = self.result()
        self.log.add(
            "battle_end",
            "バトル終了!",
            outcome=result.outcome.value if result else None,
            placement=result.placement if result else None,
        )
        logger.info(
            "Battle finished",
            extra={
                "battle_id": self.battle_id,
                "mode": self.mode.value,
                "rounds": self.round,
                "outcome": result.outcome.value if result else None,
                "placement": result.placement if result else None,
            },
        )

    def _force_finish(self) -> None:
        """Round cap reached: eliminate the survivors from lowest hp up."""
        survivors = sorted(self.living(), key=lambda p: (p.hp, p.id))
        for p in survivors:
            if self._decided():
                break
            p.take_damage(p.hp)
            self.collect_eliminations()
        logger.warning(
            "Battle hit the round cap",
            extra={"battle_id": self.battle_id, "mode": self.mode.value, "rounds": self.round},
        )
        self._finish()

    # ========================================================================
    # Mode hooks
    # ========================================================================

    @abstractmethod
    def _auto_actions(self, acted: Set[int]) -> None:
        """Run every auto-controlled actor that has not acted this round."""

    @abstractmethod
    def _decided(self) -> bool:
        """True once the overall winner is known."""

    def _human_done(self) -> bool:
        return self.phase is BattlePhase.FINISHED

    def _on_eliminated(self, newly: List[BattleParticipant]) -> None:
        """Hook for modes that track more than participant order."""

    @abstractmethod
    def result(self) -> Optional[BattleResult]:
        """The human's ``BattleResult`` once its outcome is fixed."""

    def snapshot(self) -> Dict[str, object]:
        return {
            "battleId": self.battle_id,
            "mode": self.mode.value,
            "phase": self.phase.value,
            "round": self.round,
            "participants": [p.to_dict() for p in self.participants],
        }
