"""
Rank value objects.

``RankInfo`` is always derived from a points scalar; nothing stores a tier
or division independently of the points that produced it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class RankMode(str, Enum):
    """Competitive ladders, each with its own points scalar."""

    BATTLE = "battle"
    ROYALE = "royale"
    TEAM_ROYALE = "team_royale"


@dataclass(frozen=True)
class RankTier:
    tier: str
    label: str
    min_points: int


@dataclass(frozen=True)
class RankInfo:
    """
    Tier and division derived from points.

    Attributes
    ----------
    division : int
        3 just entered the tier, 1 closest to promotion
    tier_index : int
        0 for bronze up to 6 for legend
    """

    tier: str
    division: int
    points: int
    name: str
    tier_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tier": self.tier,
            "division": self.division,
            "points": self.points,
            "name": self.name,
            "tierIndex": self.tier_index,
        }
