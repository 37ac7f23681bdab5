"""
Battle log entries.

Every resolved action, status tick and elimination appends one entry. The
log is presentation data for callers; nothing in the engine reads it back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional


@dataclass
class BattleLogEntry:
    turn: int
    event_type: str  # "attack", "heal", "stun_skip", "dot", "eliminated", ...
    message: str
    actor: Optional[int] = None
    target: Optional[int] = None
    amount: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "turn": self.turn,
            "eventType": self.event_type,
            "message": self.message,
            "actor": self.actor,
            "target": self.target,
            "amount": self.amount,
            "metadata": dict(self.metadata),
        }


class BattleLog:
    """Append-only list of entries stamped with the current turn."""

    def __init__(self) -> None:
        self.turn = 0
        self._entries: List[BattleLogEntry] = []

    def add(
        self,
        event_type: str,
        message: str,
        actor: Optional[int] = None,
        target: Optional[int] = None,
        amount: int = 0,
        **metadata: Any,
    ) -> BattleLogEntry:
        entry = BattleLogEntry(
            turn=self.turn,
            event_type=event_type,
            message=message,
            actor=actor,
            target=target,
            amount=amount,
            metadata=metadata,
        )
        self._entries.append(entry)
        return entry

    @property
    def entries(self) -> List[BattleLogEntry]:
        return list(self._entries)

    def since(self, index: int) -> List[BattleLogEntry]:
        return self._entries[index:]

    def messages(self) -> List[str]:
        return [e.message for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[BattleLogEntry]:
        return iter(self._entries)
