"""
Synchronous event bus announcing state changes (pulls, level-ups, rank
updates, settled battle rewards) to whoever listens.
"""

from hairroot.core.event.bus import EventBus, matches
from hairroot.core.event.types import EventListener, EventPayload, ListenerPriority

__all__ = ["EventBus", "EventListener", "EventPayload", "ListenerPriority", "matches"]
