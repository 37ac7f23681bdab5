"""
In-process EventBus for the Hair Root engine.

Purpose
-------
Decouple state mutations (pulls, level-ups, rank changes, settled rewards)
from whoever wants to observe them: UI glue, analytics, tests.

Responsibilities
----------------
- Register/unregister listeners with priorities
- Publish events to all matching listeners (exact + wildcard)
- Error isolation: a failing listener is logged and never blocks others
- Lightweight publish/error counters for introspection

Design Decisions
----------------
- **Instance-based**: each engine (and each test) owns its bus
- **Synchronous dispatch**: battle rounds and reward settlement run on a
  single logical thread, so listeners are plain callables invoked in order
- **Wildcard support**: ``"battle.*"`` and ``"*"`` patterns
- **Deterministic ordering**: by priority, then registration order

Examples
--------
>>> bus = EventBus()
>>> bus.subscribe("gacha.*", on_gacha_event, priority=ListenerPriority.LOW)
>>> bus.publish("gacha.pulled", {"creature_id": 12, "rarity": "rare"})
"""

from __future__ import annotations

import inspect
from collections import defaultdict
from dataclasses import replace
from typing import Any, Dict, List, Optional

from hairroot.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from hairroot.core.logging.logger import get_logger

logger = get_logger(__name__)


def matches(event_name: str, pattern: str) -> bool:
    """
    Check whether an event name matches a wildcard pattern.

    >>> matches("battle.finished", "battle.*")
    True
    >>> matches("gacha.pulled", "*.pulled")
    True
    """
    if pattern == "*":
        return True
    if "*" not in pattern:
        return event_name == pattern

    while "**" in pattern:
        pattern = pattern.replace("**", "*")
    parts = pattern.split("*")

    if parts[0] and not event_name.startswith(parts[0]):
        return False
    if parts[-1] and not event_name.endswith(parts[-1]):
        return False

    idx = len(parts[0])
    for mid in parts[1:-1]:
        if not mid:
            continue
        next_idx = event_name.find(mid, idx)
        if next_idx == -1:
            return False
        idx = next_idx + len(mid)
    return True


class EventBus:
    """Synchronous pub/sub with priorities, wildcards and error isolation."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[EventListener]] = defaultdict(list)
        self._sequence = 0
        self._published: Dict[str, int] = defaultdict(int)
        self._errors: Dict[str, int] = defaultdict(int)

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    @staticmethod
    def _check_arity(callback: CallbackType) -> None:
        try:
            sig = inspect.signature(callback)
        except (TypeError, ValueError):
            return

        kinds = [p.kind for p in sig.parameters.values()]
        if inspect.Parameter.VAR_POSITIONAL in kinds:
            return
        positional = [
            k
            for k in kinds
            if k in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        ]
        if len(positional) != 1:
            name = getattr(callback, "__qualname__", repr(callback))
            raise ValueError(
                f"Event listener '{name}' must take exactly one payload argument, "
                f"takes {len(positional)}"
            )

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
    ) -> str:
        """
        Subscribe ``callback`` to an event name or wildcard pattern.

        Subscribing the same callback twice, or reusing an explicit
        identifier, is ignored with a warning. Returns the identifier to pass
        to ``unsubscribe``.

        Raises:
            ValueError: the callback does not take exactly one payload argument
        """
        self._check_arity(callback)
        existing = self._listeners[event_name]

        duplicate = next(
            (
                item
                for item in existing
                if item.callback is callback
                or (identifier is not None and item.identifier == identifier)
            ),
            None,
        )
        if duplicate is not None:
            logger.warning(
                "EventBus: duplicate listener ignored",
                extra={"event_name": event_name, "listener_id": duplicate.identifier},
            )
            return duplicate.identifier

        self._sequence += 1
        listener = EventListener.create(
            event_name,
            callback,
            self._sequence,
            priority=priority,
            identifier=identifier,
            once=once,
        )
        if identifier is None and any(i.identifier == listener.identifier for i in existing):
            # distinct callbacks sharing a qualname (lambdas in one scope)
            listener = replace(listener, identifier=f"{listener.identifier}#{self._sequence}")
        existing.append(listener)

        logger.debug(
            "EventBus: subscribed listener",
            extra={
                "event_name": event_name,
                "listener_id": listener.identifier,
                "priority": listener.priority.name,
                "once": once,
            },
        )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        """Remove a listener. Returns False when it was not registered."""
        listeners = self._listeners.get(event_name, [])
        for listener in listeners:
            if listener.identifier == identifier:
                listeners.remove(listener)
                return True
        return False

    def clear(self) -> None:
        self._listeners.clear()

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    def _collect(self, event_name: str) -> List[EventListener]:
        collected = sorted(
            (
                listener
                for pattern, listeners in self._listeners.items()
                if matches(event_name, pattern)
                for listener in listeners
            ),
            key=lambda listener: listener.sort_key,
        )
        for listener in collected:
            if listener.once:
                self.unsubscribe(listener.pattern, listener.identifier)
        return collected

    def publish(self, event_name: str, data: EventPayload) -> List[Any]:
        """
        Deliver ``data`` to every matching listener, each getting its own copy.

        Returns the results of listeners that completed without raising.
        """
        self._published[event_name] += 1
        listeners = self._collect(event_name)

        logger.debug(
            "EventBus: publishing event",
            extra={
                "event_name": event_name,
                "payload_keys": sorted(data),
                "listener_count": len(listeners),
            },
        )

        results: List[Any] = []
        for listener in listeners:
            try:
                results.append(listener.callback(dict(data)))
            except Exception as exc:
                self._errors[event_name] += 1
                logger.error(
                    "EventBus: listener failed",
                    extra={
                        "event_name": event_name,
                        "listener_id": listener.identifier,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
        return results

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name is None:
            return sum(len(items) for items in self._listeners.values())
        return sum(
            len(items)
            for pattern, items in self._listeners.items()
            if matches(event_name, pattern)
        )

    def get_all_events(self) -> List[str]:
        return sorted(key for key, items in self._listeners.items() if items)

    def get_metrics_summary(self) -> Dict[str, Any]:
        return {
            "total_events_published": sum(self._published.values()),
            "events_by_type": dict(self._published),
            "total_errors": sum(self._errors.values()),
            "errors_by_event": dict(self._errors),
            "total_listeners": self.get_listener_count(),
        }
