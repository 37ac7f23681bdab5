"""
Progression Service

Purpose
-------
Experience, levels and level-derived scaling for collected hair roots, plus
the coin-for-exp training action.

Formulas
--------
- level factor          = 1 + (level - 1) * stat_growth          (0.15)
- effective stat        = floor(base * level factor)
- skill multiplier      = (1 + (level - 1) * skill_growth) * rarity factor
- normal attack damage  = floor(15 * level factor * rarity bonus)
- normal defense (%)    = min(60, floor(15 * level factor * rarity bonus))
- max hp                = 100 + power + grip

Level Curve
-----------
``progression.level_up_exp[rarity][level]`` is the exp needed to leave
``level``. On level-up the threshold is subtracted; at the level cap exp is
forced to 0 so nothing banks past the cap.

Configuration Keys
------------------
- progression.level_cap, progression.stat_growth, progression.skill_growth
- progression.level_up_exp.<rarity>
- progression.skill_rarity_factor.<rarity>, progression.rarity_bonus.<rarity>
- progression.normal_attack_base, progression.normal_defense_cap
- progression.base_hp, progression.evolution_display.*
- progression.training.<method>.{exp,cost}
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional

from hairroot.core.exceptions import ConfigurationError
from hairroot.modules.catalog.models import CreatureDefinition, Rarity, Skill, StatBlock
from hairroot.modules.shared.base_service import BaseService
from hairroot.modules.shared.formulas import floor_int

if TYPE_CHECKING:
    from logging import Logger

    from hairroot.core.config.manager import ConfigManager
    from hairroot.core.event.bus import EventBus
    from hairroot.modules.state.models import CollectedCreature
    from hairroot.modules.state.service import GameStateService

_DEFAULT_SKILL_FACTOR = {
    "common": 1.0,
    "uncommon": 1.05,
    "rare": 1.1,
    "epic": 1.15,
    "legendary": 1.2,
    "cosmic": 1.3,
}
_DEFAULT_RARITY_BONUS = {
    "common": 1.0,
    "uncommon": 1.1,
    "rare": 1.2,
    "epic": 1.3,
    "legendary": 1.4,
    "cosmic": 1.5,
}


class ProgressionService(BaseService):
    """
    Level curves, stat scaling and training.

    Every calculation is a pure function of (rarity, level); only ``train``
    and ``grant_exp`` mutate anything.
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self.level_cap = int(self.get_config("progression.level_cap", 10))
        self.stat_growth = float(self.get_config("progression.stat_growth", 0.15))
        self.skill_growth = float(self.get_config("progression.skill_growth", 0.08))

        self._curves: Dict[Rarity, List[int]] = {}
        for rarity in Rarity.ordered():
            curve = self.get_config(f"progression.level_up_exp.{rarity.value}", required=True)
            if not isinstance(curve, list) or len(curve) < self.level_cap:
                raise ConfigurationError(
                    f"progression.level_up_exp.{rarity.value}",
                    f"expected {self.level_cap} thresholds",
                )
            self._curves[rarity] = [int(x) for x in curve]

    # ========================================================================
    # Level curve
    # ========================================================================

    def level_up_curve(self, rarity: Rarity | str) -> List[int]:
        return list(self._curves[Rarity(rarity)])

    def exp_to_next_level(self, rarity: Rarity | str, level: int, exp: int = 0) -> int:
        """Exp still missing to leave ``level``; 0 at the cap."""
        if level >= self.level_cap:
            return 0
        return max(0, self._curves[Rarity(rarity)][level] - exp)

    def apply_exp(self, rarity: Rarity | str, level: int, exp: int, amount: int) -> tuple[int, int]:
        """Return the (level, exp) pair after adding ``amount`` exp."""
        curve = self._curves[Rarity(rarity)]
        exp += max(0, int(amount))
        while level < self.level_cap and exp >= curve[level]:
            exp -= curve[level]
            level += 1
        if level >= self.level_cap:
            level, exp = self.level_cap, 0
        return level, exp

    def grant_exp(self, creature: CollectedCreature, amount: int) -> int:
        """
        Add exp to a collected creature in place.

        Returns:
            Number of levels gained
        """
        definition = creature.require_definition()
        before = creature.level
        creature.level, creature.exp = self.apply_exp(
            definition.rarity, creature.level, creature.exp, amount
        )
        gained = creature.level - before
        if gained:
            self.log.debug(
                "Creature leveled up",
                extra={
                    "creature_id": creature.creature_id,
                    "from_level": before,
                    "to_level": creature.level,
                },
            )
        return gained

    # ========================================================================
    # Scaling
    # ========================================================================

    def level_factor(self, level: int) -> float:
        return 1 + (level - 1) * self.stat_growth

    def effective_stats(self, definition: CreatureDefinition, level: int) -> StatBlock:
        factor = self.level_factor(level)
        return StatBlock(
            power=floor_int(definition.power * factor),
            speed=floor_int(definition.speed * factor),
            grip=floor_int(definition.grip * factor),
        )

    def skill_power_multiplier(self, rarity: Rarity | str, level: int) -> float:
        rarity = Rarity(rarity)
        factor = float(
            self.get_config(
                f"progression.skill_rarity_factor.{rarity.value}",
                _DEFAULT_SKILL_FACTOR[rarity.value],
            )
        )
        return (1 + (level - 1) * self.skill_growth) * factor

    def rarity_bonus(self, rarity: Rarity | str) -> float:
        rarity = Rarity(rarity)
        return float(
            self.get_config(
                f"progression.rarity_bonus.{rarity.value}",
                _DEFAULT_RARITY_BONUS[rarity.value],
            )
        )

    def normal_attack_damage(self, rarity: Rarity | str, level: int) -> int:
        base = int(self.get_config("progression.normal_attack_base", 15))
        return floor_int(base * self.level_factor(level) * self.rarity_bonus(rarity))

    def normal_defense_reduction(self, rarity: Rarity | str, level: int) -> int:
        cap = int(self.get_config("progression.normal_defense_cap", 60))
        return min(cap, self.normal_attack_damage(rarity, level))

    def max_hp(self, stats: StatBlock) -> int:
        return int(self.get_config("progression.base_hp", 100)) + stats.power + stats.grip

    # ========================================================================
    # Evolution bonus display values
    # ========================================================================

    def evolution_stat_percent(self, evolution_bonus: int) -> int:
        per = int(self.get_config("progression.evolution_display.stat_percent_per_bonus", 5))
        return evolution_bonus * per

    def evolution_skill_percent(self, skill_bonus: int) -> int:
        per = int(self.get_config("progression.evolution_display.skill_percent_per_bonus", 10))
        return skill_bonus * per

    def boosted_skill_damage(self, skill: Skill, skill_bonus: int) -> int:
        """Skill damage shown on the collection card for an evolved holding."""
        return floor_int(skill.damage * (1 + self.evolution_skill_percent(skill_bonus) / 100))

    # ========================================================================
    # Training
    # ========================================================================

    def training_methods(self) -> Dict[str, Dict[str, int]]:
        raw = self.get_config("progression.training", {}) or {}
        return {
            name: {"exp": int(method_cfg["exp"]), "cost": int(method_cfg["cost"])}
            for name, method_cfg in raw.items()
        }

    def train(
        self, state: GameStateService, creature_id: int, method: str
    ) -> Optional[CollectedCreature]:
        """
        Spend coins to grant exp to an owned creature.

        Returns the updated holding, or ``None`` without mutating anything
        when the method is unknown, the creature is not owned, it is already
        at the level cap, or coins are insufficient.
        """
        method_cfg = self.training_methods().get(method)
        if method_cfg is None:
            self.log.debug("Unknown training method", extra={"method": method})
            return None

        holding = state.state.find(creature_id)
        if holding is None:
            self.log.debug("Training rejected: not owned", extra={"creature_id": creature_id})
            return None
        if holding.level >= self.level_cap:
            self.log.debug("Training rejected: max level", extra={"creature_id": creature_id})
            return None
        if state.state.coins < method_cfg["cost"]:
            self.log.debug(
                "Training rejected: insufficient coins",
                extra={
                    "creature_id": creature_id,
                    "cost": method_cfg["cost"],
                    "coins": state.state.coins,
                },
            )
            return None

        with state.transaction():
            state.spend_coins(method_cfg["cost"], reason="training")
            result = state.grant_exp(creature_id, method_cfg["exp"], source="training")

        self.log.info(
            "Creature trained",
            extra={
                "creature_id": creature_id,
                "method": method,
                "cost": method_cfg["cost"],
                "exp": method_cfg["exp"],
                "level": result.level if result else None,
            },
        )
        return result
