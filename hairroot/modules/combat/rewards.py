"""
Battle Reward Settlement

Purpose
-------
Turns a finished battle into coins, creature exp, rank points and item
grants, and applies them to the game state as one transaction.

Reward Tables (``combat.*`` config)
-----------------------------------
- Duel: ``duel.coins`` / ``duel.exp`` by outcome (win 50 / draw 20 / lose 10
  coins); rank updates unless the duel was a draw
- Solo royale: ``royale.coins[placement]`` x rank coin multiplier,
  ``royale.exp_rewards[placement]``; rank by placement
- Team royale: ``team_royale.coins[placement]`` x rank coin multiplier,
  ``team_royale.exp_rewards[placement]``; rank by placement
- Boss raid (unranked): on a win only, ``boss_raid.rewards.coins`` plus
  ``boss_raid.rewards.exp`` for every party member and one copy of the boss

The coin multiplier is taken from the rank before this battle's update.

Guarantees
----------
- At most one settlement per battle (``battle.rewards_settled``)
- Abandoned battles and battles whose outcome is not final settle nothing
- Coins, exp, rank and the item grant become visible together
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from hairroot.modules.catalog.service import CatalogService
from hairroot.modules.combat.engine import (
    Battle,
    BattleMode,
    BattleOutcome,
    BattlePhase,
    BattleResult,
)
from hairroot.modules.rank.models import RankInfo
from hairroot.modules.shared.base_service import BaseService
from hairroot.modules.shared.formulas import floor_int

if TYPE_CHECKING:
    from logging import Logger

    from hairroot.core.config.manager import ConfigManager
    from hairroot.core.event.bus import EventBus
    from hairroot.modules.state.service import GameStateService

_PLACEMENT_TABLES = {
    BattleMode.ROYALE: "combat.royale",
    BattleMode.TEAM_ROYALE: "combat.team_royale",
}


@dataclass(frozen=True)
class BattleRewards:
    """What one settlement granted."""

    battle_id: str
    mode: BattleMode
    outcome: BattleOutcome
    placement: Optional[int]
    coins: int
    exp: Mapping[int, int] = field(default_factory=dict)
    rank_delta: Optional[int] = None
    granted_creature_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "battleId": self.battle_id,
            "mode": self.mode.value,
            "outcome": self.outcome.value,
            "placement": self.placement,
            "coins": self.coins,
            "exp": dict(self.exp),
            "rankDelta": self.rank_delta,
            "grantedCreatureId": self.granted_creature_id,
        }


def _int_table(raw: Optional[Mapping[Any, Any]]) -> Dict[int, int]:
    return {int(k): int(v) for k, v in (raw or {}).items()}


class BattleRewardService(BaseService):
    """
    Applies battle rewards to a ``GameStateService``.

    Args:
        state: Game state owner (the reward sink)
        catalog: Creature registry for item grants
        config_manager: Reward tables
        event_bus: Event bus
    """

    def __init__(
        self,
        state: GameStateService,
        catalog: CatalogService,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self.state = state
        self.catalog = catalog

    # ========================================================================
    # Reward tables
    # ========================================================================

    def coins_for(self, result: BattleResult, rank: Optional[RankInfo]) -> int:
        if result.mode is BattleMode.DUEL:
            table = self.get_config("combat.duel.coins", {}) or {}
            defaults = {"win": 50, "draw": 20, "lose": 10}
            return int(table.get(result.outcome.value, defaults[result.outcome.value]))

        if result.mode is BattleMode.BOSS_RAID:
            if not result.won:
                return 0
            return int(self.get_config("combat.boss_raid.rewards.coins", 1000))

        prefix = _PLACEMENT_TABLES[result.mode]
        table = _int_table(self.get_config(f"{prefix}.coins", {}))
        base = table.get(result.placement or 0, int(self.get_config(f"{prefix}.fallback_coins", 0)))
        multiplier = self.state.ranks.coin_multiplier(rank) if rank is not None else 1.0
        return floor_int(base * multiplier)

    def exp_for(self, result: BattleResult) -> int:
        if result.mode is BattleMode.DUEL:
            table = self.get_config("combat.duel.exp", {}) or {}
            return int(table.get(result.outcome.value, 0))

        if result.mode is BattleMode.BOSS_RAID:
            return int(self.get_config("combat.boss_raid.rewards.exp", 500)) if result.won else 0

        prefix = _PLACEMENT_TABLES[result.mode]
        return _int_table(self.get_config(f"{prefix}.exp_rewards", {})).get(
            result.placement or 0, 0
        )

    # ========================================================================
    # Settlement
    # ========================================================================

    def can_settle(self, battle: Battle) -> bool:
        if battle.rewards_settled or battle.phase is BattlePhase.ABANDONED:
            return False
        return battle.outcome_final and battle.result() is not None

    def settle(self, battle: Battle) -> Optional[BattleRewards]:
        """
        Apply the battle's rewards once.

        Returns ``None`` without touching state for abandoned, unfinished or
        already settled battles.
        """
        if not self.can_settle(battle):
            self.log.debug(
                "Settlement skipped",
                extra={
                    "battle_id": battle.battle_id,
                    "phase": battle.phase.value,
                    "settled": battle.rewards_settled,
                },
            )
            return None

        result = battle.result()
        assert result is not None
        rank_mode = result.mode.rank_mode
        rank_before = self.state.rank_info(rank_mode) if rank_mode is not None else None

        coins = self.coins_for(result, rank_before)
        exp_amount = self.exp_for(result)
        exp: Dict[int, int] = {}
        rank_delta: Optional[int] = None
        granted: Optional[int] = None

        with self.state.transaction():
            if coins:
                self.state.add_coins(coins, reason=f"battle:{result.mode.value}")

            if exp_amount:
                for creature_id in result.creature_ids:
                    if self.state.grant_exp(creature_id, exp_amount, source=result.mode.value):
                        exp[creature_id] = exp_amount

            if rank_mode is not None and result.outcome is not BattleOutcome.DRAW:
                if result.placement is not None:
                    rank_delta = self.state.update_rank(rank_mode, placement=result.placement)
                else:
                    rank_delta = self.state.update_rank(rank_mode, won=result.won)

            if result.reward_creature_id is not None:
                definition = self.catalog.require(result.reward_creature_id)
                self.state.add_creature(definition)
                granted = definition.id

            rewards = BattleRewards(
                battle_id=result.battle_id,
                mode=result.mode,
                outcome=result.outcome,
                placement=result.placement,
                coins=coins,
                exp=exp,
                rank_delta=rank_delta,
                granted_creature_id=granted,
            )
            self.state.emit_deferred(
                "battle.finished",
                {
                    "battle_id": result.battle_id,
                    "mode": result.mode.value,
                    "outcome": result.outcome.value,
                    "placement": result.placement,
                    "rounds": result.rounds,
                },
            )
            self.state.emit_deferred("battle.rewards_settled", rewards.to_dict())

        battle.rewards_settled = True
        self.log.info(
            "Battle rewards settled",
            extra={
                "battle_id": result.battle_id,
                "mode": result.mode.value,
                "outcome": result.outcome.value,
                "placement": result.placement,
                "coins": coins,
                "exp_recipients": len(exp),
                "rank_delta": rank_delta,
                "granted_creature_id": granted,
            },
        )
        return rewards
