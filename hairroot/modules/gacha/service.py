"""
Gacha Service

Purpose
-------
Weighted random acquisition of hair roots and duplicate-based evolution.

Draw Algorithm
--------------
1. Roll ``u`` in [0, 1) from the injected ``random.Random``.
2. Walk rarities from cosmic down to common accumulating their rates; the
   first tier whose cumulative rate exceeds ``u`` wins. Common absorbs any
   remaining mass.
3. Pick uniformly inside the gacha-eligible pool of that rarity (boss-only
   creatures never appear).

Economy
-------
- Single pull: ``gacha.single_cost`` coins (10)
- Batch pull of ``gacha.batch_size`` (10): ``gacha.batch_cost`` (90), other
  sizes pay ``ceil(batch_cost * n / batch_size)``
- Evolution: consumes ``gacha.evolution.cost`` (10) copies of the source

Failure Semantics
-----------------
Insufficient coins or an ineligible evolution return ``None`` / ``[]`` and
leave state untouched. ``require_evolution`` raises for callers that want
exceptions.
"""

from __future__ import annotations

import math
import random
from typing import TYPE_CHECKING, Dict, List, Optional

from hairroot.modules.catalog.models import CreatureDefinition, Rarity
from hairroot.modules.catalog.service import CatalogService
from hairroot.modules.gacha.models import EvolutionPreview, PullResult
from hairroot.modules.shared.base_service import BaseService
from hairroot.modules.shared.exceptions import (
    InsufficientResourcesError,
    InvalidEvolutionError,
)
from hairroot.modules.state.models import CollectedCreature

if TYPE_CHECKING:
    from logging import Logger

    from hairroot.core.config.manager import ConfigManager
    from hairroot.core.event.bus import EventBus
    from hairroot.modules.state.service import GameStateService

_DEFAULT_RATES: Dict[str, float] = {
    "cosmic": 0.001,
    "legendary": 0.01,
    "epic": 0.05,
    "rare": 0.14,
    "uncommon": 0.30,
    "common": 0.499,
}


class GachaService(BaseService):
    """
    Gacha draws and evolution.

    Args:
        catalog: Creature registry
        config_manager: Balance configuration
        event_bus: Event bus
        rng: Random source; inject a seeded ``random.Random`` for tests
    """

    def __init__(
        self,
        catalog: CatalogService,
        config_manager: ConfigManager,
        event_bus: EventBus,
        rng: Optional[random.Random] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self.catalog = catalog
        self.rng = rng or random.Random()

    # ========================================================================
    # Config
    # ========================================================================

    def rates(self) -> Dict[Rarity, float]:
        raw = self.get_config("gacha.rates", _DEFAULT_RATES) or _DEFAULT_RATES
        return {r: float(raw.get(r.value, _DEFAULT_RATES[r.value])) for r in Rarity.ordered()}

    @property
    def single_cost(self) -> int:
        return int(self.get_config("gacha.single_cost", 10))

    @property
    def batch_size(self) -> int:
        return int(self.get_config("gacha.batch_size", 10))

    @property
    def evolution_cost(self) -> int:
        return int(self.get_config("gacha.evolution.cost", 10))

    @property
    def max_bonus(self) -> int:
        return int(self.get_config("gacha.evolution.max_bonus", 3))

    def batch_cost(self, n: Optional[int] = None) -> int:
        size = self.batch_size
        cost = int(self.get_config("gacha.batch_cost", 90))
        n = size if n is None else n
        if n == size:
            return cost
        return math.ceil(cost * n / size)

    # ========================================================================
    # Draws
    # ========================================================================

    def draw_rarity(self, rng: Optional[random.Random] = None) -> Rarity:
        roll = (rng or self.rng).random()
        rates = self.rates()
        cumulative = 0.0
        for rarity in reversed(Rarity.ordered()):
            cumulative += rates[rarity]
            if roll < cumulative:
                return rarity
        return Rarity.COMMON

    def draw(self, rng: Optional[random.Random] = None) -> CreatureDefinition:
        rng = rng or self.rng
        rarity = self.draw_rarity(rng)
        pool = self.catalog.gacha_pool(rarity)
        if not pool:
            self.log.warning("Empty gacha pool; falling back to common", extra={"rarity": rarity.value})
            pool = self.catalog.gacha_pool(Rarity.COMMON)
        return rng.choice(pool)

    def _apply_draws(
        self, state: GameStateService, drawn: List[CreatureDefinition], cost: int
    ) -> List[PullResult]:
        results: List[PullResult] = []
        with state.transaction() as draft:
            state.spend_coins(cost, reason="gacha")
            for definition in drawn:
                is_new = not draft.owns(definition.id)
                holding = draft.add_copy(definition)
                results.append(PullResult(definition, holding.copy(), is_new))
        return results

    def pull_single(self, state: GameStateService) -> Optional[PullResult]:
        """Draw once for ``single_cost`` coins; ``None`` if unaffordable."""
        cost = self.single_cost
        if state.state.coins < cost:
            self.log.debug(
                "Pull rejected: insufficient coins",
                extra={"cost": cost, "coins": state.state.coins},
            )
            return None

        result = self._apply_draws(state, [self.draw()], cost)[0]
        self.log.info(
            "Gacha single pull",
            extra={
                "creature_id": result.definition.id,
                "rarity": result.definition.rarity.value,
                "is_new": result.is_new,
            },
        )
        state.emit_deferred("gacha.pulled", {"results": [result.to_dict()], "cost": cost})
        return result

    def pull_batch(self, state: GameStateService, n: Optional[int] = None) -> List[PullResult]:
        """
        Draw ``n`` times (default batch size) at the discounted batch price.

        All draws are generated first and applied in one transaction.
        """
        n = self.batch_size if n is None else n
        if n <= 0:
            return []
        cost = self.batch_cost(n)
        if state.state.coins < cost:
            self.log.debug(
                "Batch pull rejected: insufficient coins",
                extra={"cost": cost, "coins": state.state.coins, "count": n},
            )
            return []

        drawn = [self.draw() for _ in range(n)]
        results = self._apply_draws(state, drawn, cost)
        self.log.info(
            "Gacha batch pull",
            extra={
                "count": n,
                "cost": cost,
                "new": sum(1 for r in results if r.is_new),
                "best_rarity": max(r.definition.rarity.order for r in results),
            },
        )
        state.emit_deferred(
            "gacha.pulled", {"results": [r.to_dict() for r in results], "cost": cost}
        )
        return results

    def require_pull(self, state: GameStateService, n: int = 1) -> List[PullResult]:
        """Like ``pull_single``/``pull_batch`` but raises when unaffordable."""
        self.validate_positive_int(n, "n")
        cost = self.single_cost if n == 1 else self.batch_cost(n)
        if state.state.coins < cost:
            raise InsufficientResourcesError("coins", cost, state.state.coins)
        if n == 1:
            single = self.pull_single(state)
            return [single] if single else []
        return self.pull_batch(state, n)

    # ========================================================================
    # Evolution
    # ========================================================================

    def _evolution_block_reason(
        self, state: GameStateService, creature_id: int
    ) -> Optional[str]:
        holding = state.state.find(creature_id)
        if holding is None:
            return "not owned"
        definition = holding.require_definition()
        if definition.evolves_to is None:
            return "no evolution target"
        if holding.count < self.evolution_cost:
            return f"needs {self.evolution_cost} copies, has {holding.count}"
        return None

    def can_evolve(self, state: GameStateService, creature_id: int) -> bool:
        return self._evolution_block_reason(state, creature_id) is None

    def evolution_preview(
        self, state: GameStateService, creature_id: int
    ) -> Optional[EvolutionPreview]:
        if not self.can_evolve(state, creature_id):
            return None
        source = state.state.find(creature_id)
        assert source is not None
        definition = source.require_definition()
        target = self.catalog.require(definition.evolves_to)  # type: ignore[arg-type]
        existing = state.state.find(target.id)

        evolution_bonus = min(self.max_bonus, source.evolution_bonus + 1)
        skill_bonus = min(self.max_bonus, source.skill_bonus + 1)
        if existing is not None:
            evolution_bonus = max(existing.evolution_bonus, evolution_bonus)
            skill_bonus = max(existing.skill_bonus, skill_bonus)

        return EvolutionPreview(
            source=definition,
            target=target,
            evolution_bonus=evolution_bonus,
            skill_bonus=skill_bonus,
            already_owned=existing is not None,
            copies_required=self.evolution_cost,
        )

    def evolve(self, state: GameStateService, creature_id: int) -> Optional[CollectedCreature]:
        """
        Consume copies of ``creature_id`` to gain its evolution target.

        The source row stays in the collection even when its count reaches 0.
        """
        reason = self._evolution_block_reason(state, creature_id)
        if reason is not None:
            self.log.debug(
                "Evolution rejected", extra={"creature_id": creature_id, "reason": reason}
            )
            return None

        preview = self.evolution_preview(state, creature_id)
        assert preview is not None

        with state.transaction() as draft:
            source = draft.find(creature_id)
            assert source is not None
            source.count -= self.evolution_cost

            target = draft.find(preview.target.id)
            if target is not None:
                target.count += 1
            else:
                target = CollectedCreature(
                    creature_id=preview.target.id, definition=preview.target
                )
                draft.collection.append(target)
            target.evolution_bonus = preview.evolution_bonus
            target.skill_bonus = preview.skill_bonus

        self.log.info(
            "Creature evolved",
            extra={
                "source_id": creature_id,
                "target_id": preview.target.id,
                "evolution_bonus": target.evolution_bonus,
                "skill_bonus": target.skill_bonus,
            },
        )
        state.emit_deferred(
            "gacha.evolved",
            {
                "source_id": creature_id,
                "target_id": preview.target.id,
                "evolution_bonus": target.evolution_bonus,
                "skill_bonus": target.skill_bonus,
                "already_owned": preview.already_owned,
            },
        )
        return target

    def require_evolution(self, state: GameStateService, creature_id: int) -> CollectedCreature:
        reason = self._evolution_block_reason(state, creature_id)
        if reason is not None:
            raise InvalidEvolutionError(reason, creature_id)
        result = self.evolve(state, creature_id)
        assert result is not None
        return result
