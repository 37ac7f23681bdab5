"""
Battle Participants
===================

Purpose
-------
Mutable per-battle combatants and their status effects, plus the factory
that builds them from collected creatures or raw catalog definitions.

Status Effects
--------------
Effects are keyed by a stable ``name``; ``label`` is display text only.

- ``defense-up``: damage reduction buff; several may coexist and the
  strongest one applies
- ``dodge-ready``: fully avoids the next incoming hit, then is consumed
- ``all-father-guard`` + ``counter-ready``: avoid the next hit and counter
- ``stat-boost:<skill>`` / ``stat-down:<skill>``: flat stat changes held in
  ``stat_deltas`` and rolled back from ``buffed_stats`` on expiry
- ``stun``: the holder skips its action
- dot effects use their own name (e.g. the burn label) and tick at end of turn

Design Decisions
----------------
- Re-applying a non-stacking effect replaces the old one (rolling back its
  stat changes first)
- hp never drops below 0; elimination bookkeeping belongs to the battle
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

from hairroot.modules.catalog.models import (
    CreatureDefinition,
    Element,
    Skill,
    SkillType,
    StatBlock,
)
from hairroot.modules.shared.formulas import floor_int

if TYPE_CHECKING:
    from hairroot.core.config.manager import ConfigManager
    from hairroot.modules.progression.service import ProgressionService
    from hairroot.modules.state.models import CollectedCreature

STATS: Tuple[str, ...] = ("power", "speed", "grip")

DEFENSE_UP = "defense-up"
DODGE_READY = "dodge-ready"
ALL_FATHER_GUARD = "all-father-guard"
COUNTER_READY = "counter-ready"
STUN = "stun"
STAT_BOOST_PREFIX = "stat-boost:"
STAT_DOWN_PREFIX = "stat-down:"


class EffectType(str, Enum):
    STUN = "stun"
    BUFF = "buff"
    DEBUFF = "debuff"
    DOT = "dot"


def _zero_stats() -> Dict[str, int]:
    return {stat: 0 for stat in STATS}


# ============================================================================
# StatusEffect
# ============================================================================


@dataclass
class StatusEffect:
    """A timed effect on a participant."""

    type: EffectType
    name: str
    duration: int
    value: int = 0
    label: str = ""
    stat: Optional[str] = None
    source_id: Optional[int] = None
    stat_deltas: Dict[str, int] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.label or self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "name": self.name,
            "label": self.display_name,
            "duration": self.duration,
            "value": self.value,
            "stat": self.stat,
        }


# ============================================================================
# BattleParticipant
# ============================================================================


@dataclass
class BattleParticipant:
    """
    One combatant in a battle.

    ``team`` groups allies: FFA modes give every participant its own team,
    team royale uses the team index, boss raids put the party on team 0.
    ``creature_id`` is the owning player's collection id when the
    participant came from the collection (``None`` for NPCs).
    """

    id: int
    name: str
    definition: CreatureDefinition
    level: int
    stats: StatBlock
    max_hp: int
    hp: int = -1
    team: int = 0
    is_npc: bool = True
    creature_id: Optional[int] = None
    skill_multiplier: float = 1.0
    skills: Tuple[Skill, ...] = ()
    damage_multipliers: Dict[str, float] = field(default_factory=dict)
    immune_to_instant_kill: bool = False
    prev_hp: int = -1
    is_eliminated: bool = False
    eliminated_at: Optional[int] = None
    cooldowns: Dict[str, int] = field(default_factory=dict)
    status_effects: List[StatusEffect] = field(default_factory=list)
    buffed_stats: Dict[str, int] = field(default_factory=_zero_stats)

    def __post_init__(self) -> None:
        if self.hp < 0:
            self.hp = self.max_hp
        if self.prev_hp < 0:
            self.prev_hp = self.hp

    # ------------------------------------------------------------------
    # Vital state
    # ------------------------------------------------------------------

    @property
    def is_alive(self) -> bool:
        return not self.is_eliminated and self.hp > 0

    @property
    def element(self) -> Element:
        return self.definition.element

    @property
    def total_power(self) -> int:
        return self.stats.power + self.buffed_stats.get("power", 0)

    def total_stat(self, stat: str) -> int:
        return getattr(self.stats, stat) + self.buffed_stats.get(stat, 0)

    def take_damage(self, amount: int) -> int:
        """Lose up to ``amount`` hp; returns the hp actually lost."""
        amount = max(0, int(amount))
        self.prev_hp = self.hp
        lost = min(self.hp, amount)
        self.hp -= lost
        return lost

    def heal(self, amount: int) -> int:
        """Recover up to ``amount`` hp, capped at max_hp; returns hp gained."""
        if not self.is_alive:
            return 0
        amount = max(0, int(amount))
        gained = min(self.max_hp - self.hp, amount)
        self.prev_hp = self.hp
        self.hp += gained
        return gained

    def eliminate(self, order: int) -> None:
        self.hp = 0
        self.is_eliminated = True
        self.eliminated_at = order

    # ------------------------------------------------------------------
    # Skills & cooldowns
    # ------------------------------------------------------------------

    def skill(self, skill_id: str) -> Optional[Skill]:
        return next((s for s in self.skills if s.id == skill_id), None)

    def cooldown_remaining(self, skill_id: str) -> int:
        return self.cooldowns.get(skill_id, 0)

    def is_ready(self, skill: Skill) -> bool:
        return self.cooldown_remaining(skill.id) <= 0

    def available_skills(self) -> List[Skill]:
        return [s for s in self.skills if self.is_ready(s)]

    def start_cooldown(self, skill: Skill, extra: int = 0) -> None:
        if skill.cooldown > 0:
            self.cooldowns[skill.id] = skill.cooldown + extra

    def tick_cooldowns(self) -> None:
        for skill_id in list(self.cooldowns):
            self.cooldowns[skill_id] = max(0, self.cooldowns[skill_id] - 1)

    def damage_multiplier(self, skill: Skill) -> float:
        """Per-skill (then per-type) damage multiplier; 1.0 when unset."""
        if skill.id in self.damage_multipliers:
            return self.damage_multipliers[skill.id]
        return self.damage_multipliers.get(skill.type.value, 1.0)

    # ------------------------------------------------------------------
    # Status effects
    # ------------------------------------------------------------------

    def find_effect(self, name: str) -> Optional[StatusEffect]:
        return next((e for e in self.status_effects if e.name == name), None)

    def has_effect(self, name: str) -> bool:
        return self.find_effect(name) is not None

    @property
    def is_stunned(self) -> bool:
        return any(e.type is EffectType.STUN for e in self.status_effects)

    def defense_reduction(self) -> int:
        """Reduction (%) of the strongest active defense-up buff."""
        return max(
            (e.value for e in self.status_effects if e.name == DEFENSE_UP),
            default=0,
        )

    def add_effect(self, effect: StatusEffect, stack: bool = False) -> StatusEffect:
        if not stack:
            self.remove_effect(effect.name)
        for stat, delta in effect.stat_deltas.items():
            self.buffed_stats[stat] = self.buffed_stats.get(stat, 0) + delta
        self.status_effects.append(effect)
        return effect

    def remove_effect(self, name: str) -> List[StatusEffect]:
        removed = [e for e in self.status_effects if e.name == name]
        for effect in removed:
            self._drop(effect)
        return removed

    def _drop(self, effect: StatusEffect) -> None:
        self.status_effects.remove(effect)
        for stat, delta in effect.stat_deltas.items():
            self.buffed_stats[stat] = self.buffed_stats.get(stat, 0) - delta

    def decay_effects(self) -> List[StatusEffect]:
        """Tick every effect down by one turn; returns the ones that expired."""
        expired: List[StatusEffect] = []
        for effect in list(self.status_effects):
            effect.duration -= 1
            if effect.duration <= 0:
                self._drop(effect)
                expired.append(effect)
        return expired

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "creatureId": self.definition.id,
            "level": self.level,
            "team": self.team,
            "hp": self.hp,
            "maxHp": self.max_hp,
            "isNpc": self.is_npc,
            "isEliminated": self.is_eliminated,
            "stats": self.stats.to_dict(),
            "buffedStats": dict(self.buffed_stats),
            "cooldowns": {k: v for k, v in self.cooldowns.items() if v > 0},
            "statusEffects": [e.to_dict() for e in self.status_effects],
        }


# ============================================================================
# ParticipantFactory
# ============================================================================


class ParticipantFactory:
    """
    Builds participants with level-scaled stats and the built-in normal
    attack / normal defense skills appended to the creature's own skills.
    """

    def __init__(self, progression: ProgressionService, config_manager: ConfigManager) -> None:
        self.progression = progression
        self.normal_attack_id = str(config_manager.get("combat.normal_attack.id", "normal-attack"))
        self.normal_attack_name = str(config_manager.get("combat.normal_attack.name", "通常攻撃"))
        self.normal_defense_id = str(
            config_manager.get("combat.normal_defense.id", "normal-defense")
        )
        self.normal_defense_name = str(
            config_manager.get("combat.normal_defense.name", "通常防御")
        )

    def builtin_skills(self, definition: CreatureDefinition, level: int) -> Tuple[Skill, Skill]:
        attack_damage = self.progression.normal_attack_damage(definition.rarity, level)
        return (
            Skill(
                id=self.normal_attack_id,
                name=self.normal_attack_name,
                type=SkillType.ATTACK,
                damage=attack_damage,
                cooldown=0,
                description=f"威力: {attack_damage}",
            ),
            Skill(
                id=self.normal_defense_id,
                name=self.normal_defense_name,
                type=SkillType.DEFENSE,
                damage=0,
                cooldown=0,
            ),
        )

    def skill_set(self, definition: CreatureDefinition, level: int) -> Tuple[Skill, ...]:
        own = tuple(definition.skills)
        builtin = tuple(
            s for s in self.builtin_skills(definition, level) if definition.skill(s.id) is None
        )
        return own + builtin

    def from_collected(
        self,
        holding: CollectedCreature,
        participant_id: int,
        team: int = 0,
        name: Optional[str] = None,
        hp_scale: float = 1.0,
        is_npc: bool = False,
    ) -> BattleParticipant:
        """Participant for one of the player's owned creatures."""
        definition = holding.require_definition()
        stats = self.progression.effective_stats(definition, holding.level)
        max_hp = floor_int(self.progression.max_hp(stats) * hp_scale)
        return BattleParticipant(
            id=participant_id,
            name=name or definition.name,
            definition=definition,
            level=holding.level,
            stats=stats,
            max_hp=max_hp,
            team=team,
            is_npc=is_npc,
            creature_id=holding.creature_id,
            skill_multiplier=self.progression.skill_power_multiplier(
                definition.rarity, holding.level
            ),
            skills=self.skill_set(definition, holding.level),
        )

    def from_definition(
        self,
        definition: CreatureDefinition,
        participant_id: int,
        level: int = 1,
        team: int = 0,
        name: Optional[str] = None,
        hp_multiplier: float = 1.0,
        is_npc: bool = True,
        skills: Optional[Sequence[Skill]] = None,
        max_hp: Optional[int] = None,
    ) -> BattleParticipant:
        """
        Participant straight from a catalog definition (NPCs, bosses).

        ``definition`` is used as given; callers that want scaled stats pass
        ``definition.scaled(multiplier)``.
        """
        stats = self.progression.effective_stats(definition, level)
        if max_hp is None:
            max_hp = floor_int(self.progression.max_hp(stats) * hp_multiplier)
        return BattleParticipant(
            id=participant_id,
            name=name or definition.name,
            definition=definition,
            level=level,
            stats=stats,
            max_hp=max_hp,
            team=team,
            is_npc=is_npc,
            skill_multiplier=self.progression.skill_power_multiplier(definition.rarity, level),
            skills=tuple(skills) if skills is not None else self.skill_set(definition, level),
        )
