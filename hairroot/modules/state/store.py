"""
State Stores

Purpose
-------
Persistence collaborators for ``GameStateService``. A store only moves the
plain save record (a dict) in and out; validation happens in the service.

Implementations
---------------
- InMemoryStateStore: process-local, for tests and embedding
- SqlStateStore: one ``save_slots`` row per slot through ``DatabaseService``
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from hairroot.core.config.config import Config
from hairroot.core.database.service import DatabaseService
from hairroot.core.logging.logger import get_logger
from hairroot.modules.state.tables import SaveSlot, _utcnow

logger = get_logger(__name__)


@runtime_checkable
class StateStore(Protocol):
    async def load_state(self) -> Optional[Dict[str, Any]]: ...

    async def save_state(self, payload: Dict[str, Any]) -> None: ...


class InMemoryStateStore:
    """Keeps a deep copy of the last saved record."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._payload: Optional[Dict[str, Any]] = copy.deepcopy(initial)
        self.save_count = 0

    async def load_state(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._payload)

    async def save_state(self, payload: Dict[str, Any]) -> None:
        self._payload = copy.deepcopy(payload)
        self.save_count += 1


class SqlStateStore:
    """
    Save slot persisted in the ``save_slots`` table.

    ``DatabaseService.initialize()`` and ``create_all()`` must have run.
    """

    def __init__(self, slot_id: Optional[str] = None) -> None:
        self.slot_id = slot_id or Config.SAVE_SLOT_ID

    async def load_state(self) -> Optional[Dict[str, Any]]:
        async with DatabaseService.get_session() as session:
            row = await session.get(SaveSlot, self.slot_id)
            if row is None:
                logger.debug("No save slot found", extra={"slot_id": self.slot_id})
                return None
            return dict(row.payload)

    async def save_state(self, payload: Dict[str, Any]) -> None:
        async with DatabaseService.get_transaction() as session:
            row = await session.get(SaveSlot, self.slot_id)
            if row is None:
                session.add(SaveSlot(slot_id=self.slot_id, payload=dict(payload)))
            else:
                row.payload = dict(payload)
                row.updated_at = _utcnow()
        logger.debug("Save slot written", extra={"slot_id": self.slot_id})
