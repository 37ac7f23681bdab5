"""
Game State Domain Models

Purpose
-------
The player's save record: coins, owned hair roots, the selected creature,
three rank-point ladders and profile strings.

Serialization
-------------
``to_dict`` / ``from_dict`` use the external camelCase record::

    {
        "coins": 100,
        "collection": [{"id": 1, "level": 1, "exp": 0, "count": 1, ...}],
        "selectedCreatureId": 1,
        "battleRankPoints": 0,
        "royaleRankPoints": 0,
        "teamRoyaleRankPoints": 0,
        "playerName": "...",
        "playerTitle": "..."
    }

Collection entries also carry the creature's catalog fields so an exported
file is readable on its own; only the progression fields are read back.

Invariants
----------
- level in [1, level_cap], exp >= 0, count >= 0
- evolution_bonus and skill_bonus in [0, 3]
- rows are never removed, even at count 0
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional

from hairroot.modules.rank.models import RankMode
from hairroot.modules.shared.exceptions import MalformedSaveError, NotFoundError

if TYPE_CHECKING:
    from hairroot.modules.catalog.models import CreatureDefinition

DefinitionResolver = Callable[[int], Optional["CreatureDefinition"]]

_RANK_ATTRIBUTES: Dict[RankMode, str] = {
    RankMode.BATTLE: "battle_rank_points",
    RankMode.ROYALE: "royale_rank_points",
    RankMode.TEAM_ROYALE: "team_royale_rank_points",
}


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedSaveError(f"{key} must be numeric, got {type(value).__name__}")
    if isinstance(value, float) and not math.isfinite(value):
        raise MalformedSaveError(f"{key} must be a finite number, got {value!r}")
    return int(value)


def _int_field(data: Mapping[str, Any], key: str, default: int) -> int:
    return _as_int(data.get(key, default), key)


# ============================================================================
# CollectedCreature
# ============================================================================


@dataclass
class CollectedCreature:
    """An owned hair root and its progression."""

    creature_id: int
    level: int = 1
    exp: int = 0
    count: int = 1
    evolution_bonus: int = 0
    skill_bonus: int = 0
    definition: Optional["CreatureDefinition"] = field(
        default=None, compare=False, repr=False
    )

    def require_definition(self) -> "CreatureDefinition":
        if self.definition is None:
            raise NotFoundError("CreatureDefinition", self.creature_id)
        return self.definition

    def copy(self) -> "CollectedCreature":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.definition is not None:
            data.update(self.definition.to_dict())
        data.update(
            {
                "id": self.creature_id,
                "level": self.level,
                "exp": self.exp,
                "count": self.count,
            }
        )
        if self.evolution_bonus:
            data["evolutionBonus"] = self.evolution_bonus
        if self.skill_bonus:
            data["skillBonus"] = self.skill_bonus
        return data

    @classmethod
    def from_dict(
        cls,
        data: Any,
        resolve: DefinitionResolver,
        level_cap: int = 10,
        max_bonus: int = 3,
    ) -> "CollectedCreature":
        if not isinstance(data, Mapping):
            raise MalformedSaveError("collection entries must be objects")
        raw_id = data.get("id", data.get("creatureId"))
        if isinstance(raw_id, bool) or not isinstance(raw_id, int):
            raise MalformedSaveError(f"collection entry has invalid id {raw_id!r}")

        definition = resolve(raw_id)
        if definition is None:
            raise MalformedSaveError(f"collection references unknown creature {raw_id}")

        level = _int_field(data, "level", 1)
        exp = _int_field(data, "exp", 0)
        count = _int_field(data, "count", 1)
        if not 1 <= level <= level_cap:
            raise MalformedSaveError(f"creature {raw_id} has level {level}")
        if exp < 0 or count < 0:
            raise MalformedSaveError(f"creature {raw_id} has negative exp or count")

        return cls(
            creature_id=raw_id,
            level=level,
            exp=0 if level >= level_cap else exp,
            count=count,
            evolution_bonus=min(max_bonus, max(0, _int_field(data, "evolutionBonus", 0))),
            skill_bonus=min(max_bonus, max(0, _int_field(data, "skillBonus", 0))),
            definition=definition,
        )


# ============================================================================
# GameState
# ============================================================================


@dataclass
class GameState:
    """The whole save record. Owned and mutated only by ``GameStateService``."""

    coins: int = 0
    collection: List[CollectedCreature] = field(default_factory=list)
    selected_creature_id: Optional[int] = None
    battle_rank_points: int = 0
    royale_rank_points: int = 0
    team_royale_rank_points: int = 0
    player_name: str = ""
    player_title: str = ""

    # ------------------------------------------------------------------
    # Collection helpers
    # ------------------------------------------------------------------

    def find(self, creature_id: int) -> Optional[CollectedCreature]:
        return next((c for c in self.collection if c.creature_id == creature_id), None)

    def owns(self, creature_id: int) -> bool:
        return self.find(creature_id) is not None

    def add_copy(self, definition: "CreatureDefinition", count: int = 1) -> CollectedCreature:
        """Increment an existing holding or insert a fresh level 1 row."""
        holding = self.find(definition.id)
        if holding is not None:
            holding.count += count
            return holding
        holding = CollectedCreature(
            creature_id=definition.id, count=count, definition=definition
        )
        self.collection.append(holding)
        return holding

    @property
    def selected(self) -> Optional[CollectedCreature]:
        if self.selected_creature_id is None:
            return None
        return self.find(self.selected_creature_id)

    # ------------------------------------------------------------------
    # Rank points
    # ------------------------------------------------------------------

    def rank_points(self, mode: RankMode | str) -> int:
        return getattr(self, _RANK_ATTRIBUTES[RankMode(mode)])

    def set_rank_points(self, mode: RankMode | str, points: int) -> None:
        setattr(self, _RANK_ATTRIBUTES[RankMode(mode)], max(0, int(points)))

    # ------------------------------------------------------------------
    # Copy / serialization
    # ------------------------------------------------------------------

    def copy(self) -> "GameState":
        return replace(self, collection=[c.copy() for c in self.collection])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coins": self.coins,
            "collection": [c.to_dict() for c in self.collection],
            "selectedCreatureId": self.selected_creature_id,
            "battleRankPoints": self.battle_rank_points,
            "royaleRankPoints": self.royale_rank_points,
            "teamRoyaleRankPoints": self.team_royale_rank_points,
            "playerName": self.player_name,
            "playerTitle": self.player_title,
        }

    @classmethod
    def from_dict(
        cls,
        data: Any,
        resolve: DefinitionResolver,
        initial: Optional["GameState"] = None,
        level_cap: int = 10,
        max_bonus: int = 3,
    ) -> "GameState":
        """
        Build a state from an external record, merged onto ``initial``.

        Raises:
            MalformedSaveError: if ``coins`` is not numeric, ``collection``
                is not a list, or any entry fails validation
        """
        if not isinstance(data, Mapping):
            raise MalformedSaveError("save record must be an object")
        coins = _as_int(data.get("coins"), "coins")
        raw_collection = data.get("collection")
        if not isinstance(raw_collection, list):
            raise MalformedSaveError("collection must be a list")

        base = initial.copy() if initial is not None else cls()

        collection: List[CollectedCreature] = []
        seen: Dict[int, CollectedCreature] = {}
        for entry in raw_collection:
            holding = CollectedCreature.from_dict(entry, resolve, level_cap, max_bonus)
            previous = seen.get(holding.creature_id)
            if previous is not None:
                raise MalformedSaveError(f"duplicate collection entry {holding.creature_id}")
            seen[holding.creature_id] = holding
            collection.append(holding)

        selected = data.get("selectedCreatureId", base.selected_creature_id)
        legacy = data.get("selectedHairRoot")
        if selected is None and isinstance(legacy, Mapping):
            selected = legacy.get("id")
        if selected is not None and (
            isinstance(selected, bool) or not isinstance(selected, int) or selected not in seen
        ):
            selected = None

        def _text(key: str, default: str) -> str:
            value = data.get(key, default)
            return value if isinstance(value, str) else default

        return cls(
            coins=max(0, coins),
            collection=collection,
            selected_creature_id=selected,
            battle_rank_points=max(0, _int_field(data, "battleRankPoints", base.battle_rank_points)),
            royale_rank_points=max(0, _int_field(data, "royaleRankPoints", base.royale_rank_points)),
            team_royale_rank_points=max(
                0, _int_field(data, "teamRoyaleRankPoints", base.team_royale_rank_points)
            ),
            player_name=_text("playerName", base.player_name),
            player_title=_text("playerTitle", base.player_title),
        )
