"""
Save slot table.

Schema-only model:
- slot_id: save slot key (one row per slot)
- payload: the camelCase GameState record as JSON
- updated_at: last write time (UTC)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SaveSlot(SQLModel, table=True):
    __tablename__ = "save_slots"

    slot_id: str = Field(primary_key=True, max_length=64)
    payload: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, nullable=False)
