"""Gacha result value objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from hairroot.modules.catalog.models import CreatureDefinition
from hairroot.modules.state.models import CollectedCreature


@dataclass(frozen=True)
class PullResult:
    """
    One gacha draw.

    ``holding`` is a snapshot of the collection row right after this draw
    was applied, so the nth duplicate of a batch shows count n.
    """

    definition: CreatureDefinition
    holding: CollectedCreature
    is_new: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.definition.id,
            "name": self.definition.name,
            "rarity": self.definition.rarity.value,
            "count": self.holding.count,
            "isNew": self.is_new,
        }


@dataclass(frozen=True)
class EvolutionPreview:
    """What ``evolve`` would produce, without doing it."""

    source: CreatureDefinition
    target: CreatureDefinition
    evolution_bonus: int
    skill_bonus: int
    already_owned: bool
    copies_required: int
