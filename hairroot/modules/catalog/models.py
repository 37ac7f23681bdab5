"""
Catalog Domain Models

Purpose
-------
Immutable value objects describing collectible hair roots and their skills.
These records are loaded once from ``config/catalog.yaml`` and shared by
every other module; nothing mutates them after load.

Invariants
----------
- Only attack, aoe and dot skills deal damage (the instant-kill special
  carries a nominal damage value that the engine ignores).
- Cooldowns are never negative.
- ``evolves_to`` is validated against the catalog by ``CatalogService``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from hairroot.modules.shared.exceptions import ValidationError
from hairroot.modules.shared.formulas import floor_int


# ============================================================================
# Enums
# ============================================================================


class Rarity(str, Enum):
    """Rarity tiers, ordered from most common to rarest."""

    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"
    COSMIC = "cosmic"

    @property
    def order(self) -> int:
        return _RARITY_ORDER.index(self)

    @classmethod
    def ordered(cls) -> Tuple["Rarity", ...]:
        return _RARITY_ORDER

    def next_tier(self) -> "Rarity":
        """The tier above this one; cosmic is its own next tier."""
        idx = min(self.order + 1, len(_RARITY_ORDER) - 1)
        return _RARITY_ORDER[idx]


_RARITY_ORDER: Tuple[Rarity, ...] = (
    Rarity.COMMON,
    Rarity.UNCOMMON,
    Rarity.RARE,
    Rarity.EPIC,
    Rarity.LEGENDARY,
    Rarity.COSMIC,
)


class Element(str, Enum):
    FIRE = "fire"
    WATER = "water"
    WIND = "wind"
    LIGHT = "light"
    DARK = "dark"
    DIVINE = "divine"


class SkillType(str, Enum):
    ATTACK = "attack"
    DEFENSE = "defense"
    SPECIAL = "special"
    AOE = "aoe"
    TEAM_HEAL = "team_heal"
    DOT = "dot"
    DODGE = "dodge"

    @property
    def deals_damage(self) -> bool:
        return self in (SkillType.ATTACK, SkillType.AOE, SkillType.DOT)


# ============================================================================
# Value Objects
# ============================================================================


@dataclass(frozen=True)
class DotEffect:
    """Damage-over-time payload attached to a dot skill."""

    name: str
    damage: int
    duration: int


@dataclass(frozen=True)
class Skill:
    """
    A skill usable in battle.

    Attributes
    ----------
    id : str
        Stable skill key (e.g. ``"fire-blast"``)
    damage : int
        Nominal damage, 0 for non-damaging skills
    cooldown : int
        Turns the skill is unavailable after use
    max_targets : Optional[int]
        Target cap for aoe skills; ``None`` means the engine default
    """

    id: str
    name: str
    type: SkillType
    damage: int = 0
    cooldown: int = 0
    description: str = ""
    max_targets: Optional[int] = None
    dot_effect: Optional[DotEffect] = None

    def __post_init__(self) -> None:
        if self.cooldown < 0:
            raise ValidationError("cooldown", f"skill {self.id} has negative cooldown")
        if self.damage < 0:
            raise ValidationError("damage", f"skill {self.id} has negative damage")
        if self.damage > 0 and not self.type.deals_damage and self.type is not SkillType.SPECIAL:
            raise ValidationError(
                "damage", f"{self.type.value} skill {self.id} cannot deal damage"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Skill":
        dot = data.get("dot_effect")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            type=SkillType(data["type"]),
            damage=int(data.get("damage", 0)),
            cooldown=int(data.get("cooldown", 0)),
            description=str(data.get("description", "")),
            max_targets=data.get("max_targets"),
            dot_effect=(
                DotEffect(
                    name=str(dot["name"]),
                    damage=int(dot["damage"]),
                    duration=int(dot["duration"]),
                )
                if dot
                else None
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "damage": self.damage,
            "cooldown": self.cooldown,
            "type": self.type.value,
        }
        if self.max_targets is not None:
            data["maxTargets"] = self.max_targets
        if self.dot_effect is not None:
            data["dotEffect"] = {
                "name": self.dot_effect.name,
                "damage": self.dot_effect.damage,
                "duration": self.dot_effect.duration,
            }
        return data


@dataclass(frozen=True)
class StatBlock:
    """Power / speed / grip triple."""

    power: int = 0
    speed: int = 0
    grip: int = 0

    @property
    def total(self) -> int:
        return self.power + self.speed + self.grip

    def to_dict(self) -> Dict[str, int]:
        return {"power": self.power, "speed": self.speed, "grip": self.grip}


@dataclass(frozen=True)
class CreatureDefinition:
    """Immutable catalog entry for one hair root."""

    id: int
    name: str
    rarity: Rarity
    element: Element
    power: int
    speed: int
    grip: int
    skills: Tuple[Skill, ...] = field(default_factory=tuple)
    description: str = ""
    evolves_to: Optional[int] = None
    boss_only: bool = False

    @property
    def base_stats(self) -> StatBlock:
        return StatBlock(self.power, self.speed, self.grip)

    def skill(self, skill_id: str) -> Optional[Skill]:
        return next((s for s in self.skills if s.id == skill_id), None)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CreatureDefinition":
        evolves_to = data.get("evolves_to")
        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            rarity=Rarity(data["rarity"]),
            element=Element(data["element"]),
            power=int(data["power"]),
            speed=int(data["speed"]),
            grip=int(data["grip"]),
            skills=tuple(Skill.from_dict(s) for s in data.get("skills", [])),
            description=str(data.get("description", "")),
            evolves_to=int(evolves_to) if evolves_to is not None else None,
            boss_only=bool(data.get("boss_only", False)),
        )

    def with_skills(self, skills: Tuple[Skill, ...]) -> "CreatureDefinition":
        """Copy of this definition with a replaced skill list (boss raid kit)."""
        return CreatureDefinition(
            id=self.id,
            name=self.name,
            rarity=self.rarity,
            element=self.element,
            power=self.power,
            speed=self.speed,
            grip=self.grip,
            skills=skills,
            description=self.description,
            evolves_to=self.evolves_to,
            boss_only=self.boss_only,
        )

    def scaled(self, multiplier: float) -> "CreatureDefinition":
        """Copy with base stats floored after multiplying (NPC strength)."""
        return CreatureDefinition(
            id=self.id,
            name=self.name,
            rarity=self.rarity,
            element=self.element,
            power=floor_int(self.power * multiplier),
            speed=floor_int(self.speed * multiplier),
            grip=floor_int(self.grip * multiplier),
            skills=self.skills,
            description=self.description,
            evolves_to=self.evolves_to,
            boss_only=self.boss_only,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "rarity": self.rarity.value,
            "element": self.element.value,
            "description": self.description,
            "power": self.power,
            "speed": self.speed,
            "grip": self.grip,
            "skills": [s.to_dict() for s in self.skills],
        }
        if self.evolves_to is not None:
            data["evolvesTo"] = self.evolves_to
        return data
