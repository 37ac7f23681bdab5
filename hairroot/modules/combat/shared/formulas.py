"""
Combat Formulas
===============

Purpose
-------
Damage resolution for every skill that hits a target.

Formula
-------
1. base   = floor(skill_damage * (1 + (power + buffed_power) / 100)
                  * element * jitter * mode_multiplier)
2. final  = floor(base * (1 - reduction / 100))

The element multiplier is folded into the base product before the target's
defense reduction is applied, so a 140 base hit at 0.7 element into a 30 %
guard lands for ``floor(floor(140 * 0.7) * 0.7) = 68``.

Design Decisions
----------------
- Damage never goes below 0 (stat-down debuffs can push power negative)
- Reduction is clamped to [0, 100]
- Jitter is drawn by the caller so the formula itself stays deterministic
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from hairroot.core.logging.logger import get_logger
from hairroot.modules.shared.formulas import clamp, floor_int

if TYPE_CHECKING:
    from hairroot.core.config.manager import ConfigManager
    from hairroot.modules.catalog.models import Element
    from hairroot.modules.combat.shared.elements import ElementResolver

logger = get_logger(__name__)


# ============================================================================
# Data Models
# ============================================================================


@dataclass(frozen=True)
class DamageInput:
    """Inputs for a single hit."""

    skill_damage: int
    attacker_power: int
    attacker_element: Optional[Element | str]
    defender_element: Optional[Element | str]
    buffed_power: int = 0
    jitter: float = 1.0
    mode_multiplier: float = 1.0
    defense_reduction: int = 0


@dataclass(frozen=True)
class DamageResult:
    """Damage breakdown for a single hit."""

    base_damage: int
    element_multiplier: float
    defense_reduction: int
    final_damage: int

    @property
    def reduced_by(self) -> int:
        return self.base_damage - self.final_damage


# ============================================================================
# CombatFormulas
# ============================================================================


class CombatFormulas:
    """
    Skill damage, defense reduction and jitter.

    Configuration Keys
    ------------------
    - combat.jitter.min (default 0.8)
    - combat.jitter.spread (default 0.4)
    """

    def __init__(self, element_resolver: ElementResolver, config_manager: ConfigManager) -> None:
        self._elements = element_resolver
        self._jitter_min = float(config_manager.get("combat.jitter.min", 0.8))
        self._jitter_spread = float(config_manager.get("combat.jitter.spread", 0.4))

    @property
    def elements(self) -> ElementResolver:
        return self._elements

    def roll_jitter(self, rng: random.Random) -> float:
        """``0.8 + random() * 0.4`` with the default config."""
        return self._jitter_min + rng.random() * self._jitter_spread

    @staticmethod
    def apply_defense(damage: int, reduction: int) -> int:
        reduction = int(clamp(reduction, 0, 100))
        return max(0, floor_int(damage * (1 - reduction / 100)))

    def base_damage(self, inp: DamageInput) -> int:
        """Damage before the target's defense reduction."""
        element = self._elements.get_multiplier(inp.attacker_element, inp.defender_element)
        power_factor = 1 + (inp.attacker_power + inp.buffed_power) / 100
        raw = inp.skill_damage * power_factor * element * inp.jitter * inp.mode_multiplier
        return max(0, floor_int(raw))

    def calculate_damage(self, inp: DamageInput) -> DamageResult:
        """
        Resolve one hit.

        Example:
            >>> formulas.calculate_damage(DamageInput(100, 50, "fire", "light"))
            DamageResult(base_damage=150, element_multiplier=1.0, defense_reduction=0, final_damage=150)
        """
        element = self._elements.get_multiplier(inp.attacker_element, inp.defender_element)
        base = self.base_damage(inp)
        final = self.apply_defense(base, inp.defense_reduction)
        logger.debug(
            "Damage calculated",
            extra={
                "skill_damage": inp.skill_damage,
                "base_damage": base,
                "element_multiplier": element,
                "defense_reduction": inp.defense_reduction,
                "final_damage": final,
            },
        )
        return DamageResult(
            base_damage=base,
            element_multiplier=element,
            defense_reduction=int(clamp(inp.defense_reduction, 0, 100)),
            final_damage=final,
        )
