"""
Game State Service

Purpose
-------
Single owner of the player's ``GameState``. Every mutation (gacha pulls,
evolution, training, battle rewards, import, reset) goes through this
service, which is passed explicitly to the modules that need it.

Responsibilities
----------------
- Reward sink: add_coins / spend_coins / grant_exp / update_rank
- Collection writes: add_creature, select_creature
- Atomic visibility: ``transaction()`` stages a copy and swaps it in only
  when the block completes; events raised inside are delivered after swap
- Persistence through a ``StateStore`` (load / save)
- JSON export and validated import

Error Handling
--------------
- Malformed import data is rejected (``import_state`` returns False) and the
  current state is left untouched.
- Malformed or missing persisted data on ``load`` falls back to the initial
  state.

Usage Example
-------------
>>> with state.transaction():
...     state.add_coins(500)
...     state.update_rank(RankMode.ROYALE, placement=1)
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

from hairroot.core.config.manager import ConfigManager
from hairroot.core.event.bus import EventBus
from hairroot.core.logging.logger import LogContext
from hairroot.modules.catalog.models import CreatureDefinition
from hairroot.modules.catalog.service import CatalogService
from hairroot.modules.progression.service import ProgressionService
from hairroot.modules.rank.models import RankInfo, RankMode
from hairroot.modules.rank.service import RankService
from hairroot.modules.shared.base_service import BaseService
from hairroot.modules.shared.exceptions import MalformedSaveError
from hairroot.modules.state.models import CollectedCreature, GameState
from hairroot.modules.state.store import StateStore


class GameStateService(BaseService):
    """
    Explicit owner of the save record.

    Public Methods
    --------------
    - state (property) -> committed GameState; treat as read-only
    - transaction() -> context manager yielding the staged draft
    - add_coins / spend_coins / grant_exp / update_rank / add_creature
    - select_creature / rank_info
    - load / save / export_state / import_state / reset
    """

    def __init__(
        self,
        catalog: CatalogService,
        progression: ProgressionService,
        ranks: RankService,
        config_manager: ConfigManager,
        event_bus: EventBus,
        store: Optional[StateStore] = None,
        logger=None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self.catalog = catalog
        self.progression = progression
        self.ranks = ranks
        self.store = store
        self._state: GameState = self.initial_state()
        self._draft: Optional[GameState] = None
        self._pending_events: List[Tuple[str, Dict[str, Any]]] = []

    # ========================================================================
    # State access
    # ========================================================================

    @property
    def state(self) -> GameState:
        """The committed state (the staged draft while a transaction is open)."""
        return self._draft if self._draft is not None else self._state

    @property
    def in_transaction(self) -> bool:
        return self._draft is not None

    def initial_state(self) -> GameState:
        initial = self.get_config("state.initial", {}) or {}
        return GameState(
            coins=int(initial.get("coins", 100)),
            collection=[],
            selected_creature_id=None,
            battle_rank_points=int(initial.get("battle_rank_points", 0)),
            royale_rank_points=int(initial.get("royale_rank_points", 0)),
            team_royale_rank_points=int(initial.get("team_royale_rank_points", 0)),
            player_name=str(initial.get("player_name", "")),
            player_title=str(initial.get("player_title", "")),
        )

    @contextmanager
    def transaction(self) -> Iterator[GameState]:
        """
        Stage all writes on a copy and publish them together.

        Nested calls join the outer transaction. If the block raises, the
        draft and any events raised inside it are discarded.
        """
        if self._draft is not None:
            yield self._draft
            return

        self._draft = self._state.copy()
        try:
            yield self._draft
        except BaseException:
            self._draft = None
            self._pending_events.clear()
            raise

        self._state = self._draft
        self._draft = None
        events, self._pending_events = self._pending_events, []
        for event_name, payload in events:
            self.emit_event(event_name, payload)

    def emit_deferred(self, event_name: str, payload: Dict[str, Any]) -> None:
        """Publish now, or after commit when a transaction is open."""
        if self._draft is not None:
            self._pending_events.append((event_name, payload))
        else:
            self.emit_event(event_name, payload)

    # ========================================================================
    # Reward sink
    # ========================================================================

    def add_coins(self, delta: int, reason: str = "reward") -> int:
        """Add (or remove) coins, flooring the balance at 0. Returns the balance."""
        with self.transaction() as draft:
            before = draft.coins
            draft.coins = max(0, draft.coins + int(delta))
            self.emit_deferred(
                "economy.coins_changed",
                {"delta": draft.coins - before, "balance": draft.coins, "reason": reason},
            )
            return draft.coins

    def spend_coins(self, amount: int, reason: str = "purchase") -> bool:
        """Deduct ``amount`` if affordable; returns False without mutating otherwise."""
        if amount < 0 or self.state.coins < amount:
            return False
        self.add_coins(-amount, reason=reason)
        return True

    def grant_exp(
        self, creature_id: int, amount: int, source: str = "battle"
    ) -> Optional[CollectedCreature]:
        """Grant exp to an owned creature; ``None`` if it is not owned."""
        if self.state.find(creature_id) is None:
            self.log.debug("Exp grant skipped: not owned", extra={"creature_id": creature_id})
            return None

        with self.transaction() as draft:
            holding = draft.find(creature_id)
            assert holding is not None
            levels = self.progression.grant_exp(holding, amount)
            self.emit_deferred(
                "progression.exp_granted",
                {"creature_id": creature_id, "amount": amount, "source": source},
            )
            if levels:
                self.emit_deferred(
                    "progression.leveled_up",
                    {"creature_id": creature_id, "level": holding.level, "levels": levels},
                )
            return holding

    def rank_info(self, mode: RankMode | str) -> RankInfo:
        return self.ranks.rank_from_points(self.state.rank_points(mode))

    def update_rank(
        self,
        mode: RankMode | str,
        won: Optional[bool] = None,
        placement: Optional[int] = None,
    ) -> int:
        """
        Apply the rank-point change for a finished battle.

        Returns the applied delta (which may be smaller than the computed
        change when the floor at 0 clips a loss).
        """
        mode = RankMode(mode)
        if won is None:
            won = placement is not None and self.ranks.is_win(mode, placement)

        with self.transaction() as draft:
            before_points = draft.rank_points(mode)
            before = self.ranks.rank_from_points(before_points)
            delta = self.ranks.points_delta(won, before, placement)
            after_points = self.ranks.apply_delta(before_points, delta)
            draft.set_rank_points(mode, after_points)
            after = self.ranks.rank_from_points(after_points)
            self.emit_deferred(
                "rank.updated",
                {
                    "mode": mode.value,
                    "delta": after_points - before_points,
                    "points": after_points,
                    "rank": after.name,
                    "promoted": after.tier_index > before.tier_index,
                },
            )

        self.log.info(
            "Rank updated",
            extra={
                "mode": mode.value,
                "won": won,
                "placement": placement,
                "points": after_points,
                "rank": after.name,
            },
        )
        return after_points - before_points

    def add_creature(self, definition: CreatureDefinition, count: int = 1) -> CollectedCreature:
        with self.transaction() as draft:
            return draft.add_copy(definition, count)

    # ========================================================================
    # Selection
    # ========================================================================

    def select_creature(self, creature_id: Optional[int]) -> bool:
        """Select an owned creature for battle, or clear with ``None``."""
        if creature_id is not None and self.state.find(creature_id) is None:
            self.log.debug("Selection rejected: not owned", extra={"creature_id": creature_id})
            return False
        with self.transaction() as draft:
            draft.selected_creature_id = creature_id
        return True

    @property
    def selected(self) -> Optional[CollectedCreature]:
        return self.state.selected

    # ========================================================================
    # Serialization
    # ========================================================================

    def _parse(self, data: Any) -> GameState:
        return GameState.from_dict(
            data,
            self.catalog.find,
            initial=self.initial_state(),
            level_cap=self.progression.level_cap,
            max_bonus=int(self.get_config("gacha.evolution.max_bonus", 3)),
        )

    def export_state(self) -> str:
        payload = self.state.to_dict()
        self.log.info(
            "State exported",
            extra={"coins": payload["coins"], "collection_size": len(payload["collection"])},
        )
        return json.dumps(payload, ensure_ascii=False, indent=2)

    def import_state(self, text: str) -> bool:
        """
        Replace the state with an exported record.

        Returns False and leaves the current state untouched when the text is
        not JSON or fails structural validation.
        """
        if self.in_transaction:
            self.log.warning("Import rejected: transaction in progress")
            return False
        try:
            data = json.loads(text)
            new_state = self._parse(data)
        except (json.JSONDecodeError, TypeError) as exc:
            self.log.warning("Import rejected: not valid JSON", extra={"error": str(exc)})
            return False
        except MalformedSaveError as exc:
            self.log.warning("Import rejected: malformed save", extra={"reason": exc.reason})
            return False

        self._state = new_state
        self.log.info(
            "State imported",
            extra={"coins": new_state.coins, "collection_size": len(new_state.collection)},
        )
        self.emit_deferred("state.imported", {"coins": new_state.coins})
        return True

    def reset(self) -> None:
        if self.in_transaction:
            self.log.warning("Reset ignored: transaction in progress")
            return
        self._state = self.initial_state()
        self.log.info("State reset to initial values")
        self.emit_deferred("state.reset", {})

    # ========================================================================
    # Persistence
    # ========================================================================

    async def load(self) -> GameState:
        """
        Load from the store. Missing or malformed data yields the initial
        state; store failures propagate.
        """
        if self.store is None:
            return self.state
        async with LogContext(component="state", operation="load"):
            data = await self.store.load_state()
            if data is None:
                self._state = self.initial_state()
                self.log.info("No saved state; starting fresh")
                return self._state
            try:
                self._state = self._parse(data)
            except MalformedSaveError as exc:
                self.log.warning(
                    "Saved state is malformed; falling back to initial state",
                    extra={"reason": exc.reason},
                )
                self._state = self.initial_state()
            else:
                self.log.info(
                    "State loaded",
                    extra={"coins": self._state.coins, "collection_size": len(self._state.collection)},
                )
            return self._state

    async def save(self) -> None:
        if self.store is None:
            return
        async with LogContext(component="state", operation="save"):
            await self.store.save_state(self._state.to_dict())
            self.log.debug("State saved")
