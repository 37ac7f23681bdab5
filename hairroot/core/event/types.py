"""
Event system types: payload alias, listener priorities and the listener
record stored per pattern by ``EventBus``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple

# Plain dict payload; keep it JSON-serializable for log output
EventPayload = dict[str, Any]

CallbackType = Callable[[EventPayload], Any]


class ListenerPriority(Enum):
    """
    Dispatch order for listeners on the same event. Lower runs first.

    STATE (0): hooks that must see a change before anything else (saves)
    HIGH (10): follow-ups such as unlock checks after a pull or level-up
    NORMAL (50): default
    LOW (100): analytics and log sinks
    """

    STATE = 0
    HIGH = 10
    NORMAL = 50
    LOW = 100


def default_identifier(pattern: str, callback: CallbackType) -> str:
    """``module.qualname@pattern``; stable across runs for the same callback."""
    module = getattr(callback, "__module__", None) or "unknown"
    name = getattr(callback, "__qualname__", None) or getattr(callback, "__name__", "callback")
    return f"{module}.{name}@{pattern}"


@dataclass(slots=True, frozen=True)
class EventListener:
    """
    One subscription.

    ``sequence`` is the bus-wide registration counter, so listeners of equal
    priority run in the order they subscribed, across patterns too.
    """

    pattern: str
    callback: CallbackType
    priority: ListenerPriority
    identifier: str
    sequence: int
    once: bool = False

    @classmethod
    def create(
        cls,
        pattern: str,
        callback: CallbackType,
        sequence: int,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
    ) -> "EventListener":
        return cls(
            pattern=pattern,
            callback=callback,
            priority=priority,
            identifier=identifier or default_identifier(pattern, callback),
            sequence=sequence,
            once=once,
        )

    @property
    def sort_key(self) -> Tuple[int, int]:
        return (self.priority.value, self.sequence)
