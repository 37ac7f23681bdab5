"""
Effect Executor
===============

Purpose
-------
Interprets the non-damage side of skills from configuration tables instead
of per-skill branches:

- ``combat.defense_skills``: skill id -> {reduction, duration}
- ``combat.dodge``: duration of the ``dodge-ready`` buff
- ``combat.team_heal``: heal percent per skill id (default 50)
- ``combat.special_effects``: skill id -> {target, steps}
- ``combat.boss_raid.on_hit``: skill id -> steps applied to each target hit

Step Kinds
----------
heal, stun, stat_buff, stat_debuff, defense_up, dot, damage, guard,
instant_kill. Steps marked ``scaled`` multiply their magnitude by the
actor's skill-power multiplier.

Interception
------------
``intercept`` runs before every hit: a ``dodge-ready`` buff is consumed
first, then an ``all-father-guard`` (with its paired ``counter-ready``),
which nullifies the hit and deals the counter value back to the attacker.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from hairroot.core.config.manager import ConfigManager
from hairroot.core.exceptions import ConfigurationError
from hairroot.core.logging.logger import get_logger
from hairroot.modules.catalog.models import Skill
from hairroot.modules.combat.shared.log import BattleLog
from hairroot.modules.combat.shared.participant import (
    ALL_FATHER_GUARD,
    COUNTER_READY,
    DEFENSE_UP,
    DODGE_READY,
    STAT_BOOST_PREFIX,
    STAT_DOWN_PREFIX,
    STATS,
    STUN,
    BattleParticipant,
    EffectType,
    StatusEffect,
)
from hairroot.modules.shared.formulas import floor_int, percent_of

logger = get_logger(__name__)

# Callback used by damage steps: (target, raw amount) -> hp actually lost.
StrikeFn = Callable[[BattleParticipant, int], int]


class EffectTarget(str, Enum):
    SELF = "self"
    SINGLE = "single"
    ALL_ENEMIES = "all_enemies"


class EffectKind(str, Enum):
    HEAL = "heal"
    STUN = "stun"
    STAT_BUFF = "stat_buff"
    STAT_DEBUFF = "stat_debuff"
    DEFENSE_UP = "defense_up"
    DOT = "dot"
    DAMAGE = "damage"
    GUARD = "guard"
    INSTANT_KILL = "instant_kill"


# ============================================================================
# Descriptors
# ============================================================================


@dataclass(frozen=True)
class DefenseEntry:
    reduction: int
    duration: int


@dataclass(frozen=True)
class EffectStep:
    """One step of an effect descriptor; unused fields stay at defaults."""

    kind: EffectKind
    percent: int = 0
    value: int = 0
    duration: int = 1
    stat: Optional[str] = None
    name: str = ""
    label: str = ""
    damage: int = 0
    amount: int = 0
    reduction: int = 0
    counter: int = 0
    scaled: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], where: str) -> "EffectStep":
        try:
            kind = EffectKind(data["kind"])
        except (KeyError, ValueError) as exc:
            raise ConfigurationError(where, f"unknown effect kind {data.get('kind')!r}") from exc
        stat = data.get("stat")
        if stat is not None and stat != "all" and stat not in STATS:
            raise ConfigurationError(where, f"unknown stat {stat!r}")
        return cls(
            kind=kind,
            percent=int(data.get("percent", 0)),
            value=int(data.get("value", 0)),
            duration=int(data.get("duration", 1)),
            stat=stat,
            name=str(data.get("name", "")),
            label=str(data.get("label", "")),
            damage=int(data.get("damage", 0)),
            amount=int(data.get("amount", 0)),
            reduction=int(data.get("reduction", 0)),
            counter=int(data.get("counter", 0)),
            scaled=bool(data.get("scaled", False)),
        )


@dataclass(frozen=True)
class SpecialEffect:
    target: EffectTarget
    steps: Tuple[EffectStep, ...]


def _stat_keys(stat: Optional[str]) -> Tuple[str, ...]:
    if stat is None or stat == "all":
        return STATS
    return (stat,)


# ============================================================================
# EffectExecutor
# ============================================================================


class EffectExecutor:
    """
    Applies defense, dodge, team heal and special-skill descriptors.

    Public Methods
    --------------
    - defense_entry(skill_id) -> DefenseEntry
    - special(skill_id) -> Optional[SpecialEffect]
    - apply_defense / apply_dodge / apply_team_heal
    - run_steps(actor, skill, steps, recipients, log, strike)
    - apply_on_hit(actor, skill, target, log)
    - intercept(attacker, defender, log) -> True when the hit is nullified
    """

    def __init__(self, config_manager: ConfigManager) -> None:
        table = config_manager.get("combat.defense_skills", {}) or {}
        fallback = table.get("fallback") or {}
        self._defense_fallback = DefenseEntry(
            reduction=int(fallback.get("reduction", 20)),
            duration=int(fallback.get("duration", 1)),
        )
        self._defense: Dict[str, DefenseEntry] = {}
        for group in table.get("groups") or []:
            entry = DefenseEntry(int(group["reduction"]), int(group["duration"]))
            for skill_id in group.get("skills") or []:
                self._defense[str(skill_id)] = entry
        for skill_id, entry in (table.get("skills") or {}).items():
            self._defense[str(skill_id)] = DefenseEntry(
                int(entry["reduction"]), int(entry["duration"])
            )

        self.dodge_duration = int(config_manager.get("combat.dodge.duration", 1))
        self._heal_default = int(config_manager.get("combat.team_heal.default_percent", 50))
        self._heal_percent: Dict[str, int] = {
            str(k): int(v)
            for k, v in (config_manager.get("combat.team_heal.skills", {}) or {}).items()
        }

        self._specials: Dict[str, SpecialEffect] = {}
        for skill_id, entry in (config_manager.get("combat.special_effects", {}) or {}).items():
            where = f"combat.special_effects.{skill_id}"
            try:
                target = EffectTarget(entry.get("target", "self"))
            except ValueError as exc:
                raise ConfigurationError(where, f"unknown target {entry.get('target')!r}") from exc
            steps = tuple(EffectStep.from_dict(s, where) for s in entry.get("steps") or [])
            self._specials[str(skill_id)] = SpecialEffect(target, steps)

        self._on_hit: Dict[str, Tuple[EffectStep, ...]] = {
            str(skill_id): tuple(
                EffectStep.from_dict(s, f"combat.boss_raid.on_hit.{skill_id}") for s in steps
            )
            for skill_id, steps in (config_manager.get("combat.boss_raid.on_hit", {}) or {}).items()
        }

        logger.debug(
            "EffectExecutor initialized",
            extra={
                "defense_entries": len(self._defense),
                "special_effects": len(self._specials),
                "on_hit": len(self._on_hit),
            },
        )

    # ========================================================================
    # Lookups
    # ========================================================================

    def defense_entry(self, skill_id: str) -> DefenseEntry:
        return self._defense.get(skill_id, self._defense_fallback)

    def special(self, skill_id: str) -> Optional[SpecialEffect]:
        return self._specials.get(skill_id)

    def heal_percent(self, skill_id: str) -> int:
        return self._heal_percent.get(skill_id, self._heal_default)

    def on_hit_steps(self, skill_id: str) -> Tuple[EffectStep, ...]:
        return self._on_hit.get(skill_id, ())

    # ========================================================================
    # Defense / dodge / team heal
    # ========================================================================

    def apply_defense(self, actor: BattleParticipant, skill: Skill, log: BattleLog) -> StatusEffect:
        entry = self.defense_entry(skill.id)
        effect = actor.add_effect(
            StatusEffect(
                type=EffectType.BUFF,
                name=DEFENSE_UP,
                label="防御強化",
                duration=entry.duration,
                value=entry.reduction,
                source_id=actor.id,
            ),
            stack=True,
        )
        log.add(
            "defense",
            f"{actor.name}の{skill.name}で{entry.reduction}%ダメージ軽減!",
            actor=actor.id,
            amount=entry.reduction,
            skill_id=skill.id,
            duration=entry.duration,
        )
        return effect

    def apply_dodge(self, actor: BattleParticipant, skill: Skill, log: BattleLog) -> StatusEffect:
        effect = actor.add_effect(
            StatusEffect(
                type=EffectType.BUFF,
                name=DODGE_READY,
                label="回避準備",
                duration=self.dodge_duration,
                value=100,
                source_id=actor.id,
            )
        )
        log.add(
            "dodge",
            f"{actor.name}の{skill.name}で次の攻撃を完全に回避できる態勢を整えた!",
            actor=actor.id,
            skill_id=skill.id,
        )
        return effect

    def apply_team_heal(
        self,
        actor: BattleParticipant,
        skill: Skill,
        recipients: Sequence[BattleParticipant],
        log: BattleLog,
    ) -> Dict[int, int]:
        percent = self.heal_percent(skill.id) * actor.skill_multiplier
        healed: Dict[int, int] = {}
        for ally in recipients:
            gained = ally.heal(percent_of(ally.max_hp, percent))
            healed[ally.id] = gained
            log.add(
                "heal",
                f"{actor.name}の{skill.name}! {ally.name}のHPが{gained}回復!",
                actor=actor.id,
                target=ally.id,
                amount=gained,
                skill_id=skill.id,
            )
        return healed

    # ========================================================================
    # Interception
    # ========================================================================

    def intercept(
        self, attacker: BattleParticipant, defender: BattleParticipant, log: BattleLog
    ) -> bool:
        """
        Consume a dodge or all-father guard on ``defender``.

        Returns True when the incoming hit is nullified. A counter may
        reduce the attacker to 0 hp; the battle handles the elimination.
        """
        if defender.remove_effect(DODGE_READY):
            log.add(
                "dodged",
                f"{defender.name}の回避で攻撃を完全に回避した!",
                actor=defender.id,
                target=attacker.id,
            )
            return True

        if not defender.has_effect(ALL_FATHER_GUARD):
            return False

        defender.remove_effect(ALL_FATHER_GUARD)
        counters = defender.remove_effect(COUNTER_READY)
        log.add(
            "guarded",
            f"{defender.name}はオールファーザーで攻撃を完全回避!",
            actor=defender.id,
            target=attacker.id,
        )
        counter = counters[0].value if counters else 0
        if counter > 0:
            lost = attacker.take_damage(counter)
            log.add(
                "counter",
                f"{defender.name}の反撃が{attacker.name}に{lost}ダメージ!",
                actor=defender.id,
                target=attacker.id,
                amount=lost,
            )
        return True

    # ========================================================================
    # Descriptor steps
    # ========================================================================

    def run_steps(
        self,
        actor: BattleParticipant,
        skill: Skill,
        steps: Sequence[EffectStep],
        recipients: Sequence[BattleParticipant],
        log: BattleLog,
        strike: StrikeFn,
    ) -> Dict[int, int]:
        """
        Execute ``steps`` against each recipient in order.

        Returns hp lost per participant id for damage and instant-kill steps.
        """
        damage: Dict[int, int] = {}
        for step in steps:
            for target in recipients:
                if not target.is_alive:
                    continue
                lost = self._apply_step(actor, skill, step, target, log, strike)
                if lost:
                    damage[target.id] = damage.get(target.id, 0) + lost
        return damage

    def apply_on_hit(
        self, actor: BattleParticipant, skill: Skill, target: BattleParticipant, log: BattleLog
    ) -> None:
        steps = self.on_hit_steps(skill.id)
        if steps and target.is_alive:
            self.run_steps(actor, skill, steps, [target], log, strike=lambda t, a: 0)

    def _magnitude(self, actor: BattleParticipant, step: EffectStep, base: int) -> int:
        if step.scaled:
            return floor_int(base * actor.skill_multiplier)
        return base

    def _apply_step(
        self,
        actor: BattleParticipant,
        skill: Skill,
        step: EffectStep,
        target: BattleParticipant,
        log: BattleLog,
        strike: StrikeFn,
    ) -> int:
        kind = step.kind

        if kind is EffectKind.HEAL:
            percent = step.percent * (actor.skill_multiplier if step.scaled else 1.0)
            gained = target.heal(percent_of(target.max_hp, percent))
            log.add(
                "heal",
                f"{actor.name}の{skill.name}! {target.name}のHPが{gained}回復!",
                actor=actor.id,
                target=target.id,
                amount=gained,
                skill_id=skill.id,
            )
            return 0

        if kind is EffectKind.STUN:
            duration = max(1, self._magnitude(actor, step, step.duration))
            target.add_effect(
                StatusEffect(
                    type=EffectType.STUN,
                    name=STUN,
                    label=step.label or "行動不能",
                    duration=duration,
                    source_id=actor.id,
                )
            )
            log.add(
                "stun",
                f"{actor.name}の{skill.name}! {target.name}は{step.label or '行動不能'}状態に!",
                actor=actor.id,
                target=target.id,
                duration=duration,
                skill_id=skill.id,
            )
            return 0

        if kind is EffectKind.STAT_BUFF:
            value = self._magnitude(actor, step, step.value)
            keys = _stat_keys(step.stat)
            target.add_effect(
                StatusEffect(
                    type=EffectType.BUFF,
                    name=f"{STAT_BOOST_PREFIX}{skill.id}",
                    label=step.label,
                    duration=step.duration,
                    value=value,
                    stat=step.stat,
                    source_id=actor.id,
                    stat_deltas={k: value for k in keys},
                )
            )
            log.add(
                "buff",
                f"{actor.name}の{skill.name}! {target.name}の能力が{value}上昇!",
                actor=actor.id,
                target=target.id,
                amount=value,
                skill_id=skill.id,
            )
            return 0

        if kind is EffectKind.STAT_DEBUFF:
            deltas = {
                k: -percent_of(getattr(target.stats, k), step.percent)
                for k in _stat_keys(step.stat)
            }
            target.add_effect(
                StatusEffect(
                    type=EffectType.DEBUFF,
                    name=f"{STAT_DOWN_PREFIX}{skill.id}",
                    label=step.label,
                    duration=step.duration,
                    value=step.percent,
                    stat=step.stat,
                    source_id=actor.id,
                    stat_deltas=deltas,
                )
            )
            log.add(
                "debuff",
                f"{target.name}の{step.label or '能力'}! ({step.percent}%ダウン)",
                actor=actor.id,
                target=target.id,
                amount=step.percent,
                skill_id=skill.id,
            )
            return 0

        if kind is EffectKind.DEFENSE_UP:
            target.add_effect(
                StatusEffect(
                    type=EffectType.BUFF,
                    name=DEFENSE_UP,
                    label=step.label or "防御強化",
                    duration=step.duration,
                    value=step.reduction,
                    source_id=actor.id,
                ),
                stack=True,
            )
            log.add(
                "defense",
                f"{target.name}の{step.label or '防御'}で{step.reduction}%ダメージ軽減!",
                actor=actor.id,
                target=target.id,
                amount=step.reduction,
                skill_id=skill.id,
            )
            return 0

        if kind is EffectKind.DOT:
            apply_dot(target, step.name, step.damage, step.duration, actor.id)
            log.add(
                "dot_applied",
                f"{target.name}に{step.name}を付与!",
                actor=actor.id,
                target=target.id,
                amount=step.damage,
                skill_id=skill.id,
            )
            return 0

        if kind is EffectKind.DAMAGE:
            lost = strike(target, self._magnitude(actor, step, step.amount))
            return lost

        if kind is EffectKind.GUARD:
            target.add_effect(
                StatusEffect(
                    type=EffectType.BUFF,
                    name=ALL_FATHER_GUARD,
                    label="オールファーザー",
                    duration=step.duration,
                    value=100,
                    source_id=actor.id,
                )
            )
            target.add_effect(
                StatusEffect(
                    type=EffectType.BUFF,
                    name=COUNTER_READY,
                    label="反撃準備",
                    duration=step.duration,
                    value=step.counter,
                    source_id=actor.id,
                )
            )
            log.add(
                "guard",
                f"{target.name}は次の攻撃を見切る構えを取った!",
                actor=actor.id,
                target=target.id,
                amount=step.counter,
                skill_id=skill.id,
            )
            return 0

        if kind is EffectKind.INSTANT_KILL:
            if target.immune_to_instant_kill:
                log.add(
                    "immune",
                    f"{target.name}には{skill.name}が効かない!",
                    actor=actor.id,
                    target=target.id,
                    skill_id=skill.id,
                )
                return 0
            lost = target.take_damage(target.hp)
            log.add(
                "instant_kill",
                f"{actor.name}の{skill.name}! {target.name}は消滅した!",
                actor=actor.id,
                target=target.id,
                amount=lost,
                skill_id=skill.id,
            )
            return lost

        raise ConfigurationError(f"effect.{kind.value}", "no handler for effect kind")


def apply_dot(
    target: BattleParticipant, name: str, damage: int, duration: int, source_id: Optional[int]
) -> StatusEffect:
    """Apply (or refresh) a named damage-over-time effect."""
    return target.add_effect(
        StatusEffect(
            type=EffectType.DOT,
            name=name,
            label=name,
            duration=duration,
            value=damage,
            source_id=source_id,
        )
    )
