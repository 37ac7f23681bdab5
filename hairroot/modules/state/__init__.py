"""Game state ownership, persistence stores and the save record model."""

from hairroot.modules.state.models import CollectedCreature, GameState
from hairroot.modules.state.service import GameStateService
from hairroot.modules.state.store import InMemoryStateStore, SqlStateStore, StateStore
from hairroot.modules.state.tables import SaveSlot

__all__ = [
    "CollectedCreature",
    "GameState",
    "GameStateService",
    "InMemoryStateStore",
    "SaveSlot",
    "SqlStateStore",
    "StateStore",
]
