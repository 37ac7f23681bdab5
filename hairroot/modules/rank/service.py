"""
Rank Service

Purpose
-------
Turns a rank-points scalar into a tier/division, computes point changes for
battle outcomes, and derives the matchmaking and economy multipliers.

Formulas
--------
- division = clamp(3 - floor(points_in_tier / tier_range * 3), 1, 3)
- gain = max(gain.floor, gain.base - gain.step * tier_index)
- loss = max(loss.floor, loss.base - loss.step * tier_index)
- placement modes scale gain by ``rank.placement_multipliers``; placements
  outside the table lose ``loss`` points
- coin multiplier = 1 + tier_index * 0.1
- npc multiplier  = 1 + tier_index * 0.2 + (3 - division) * 0.05

Configuration Keys
------------------
- rank.tiers, rank.final_tier_range
- rank.gain.*, rank.loss.*, rank.placement_multipliers
- rank.coin_multiplier_step, rank.npc_tier_step, rank.npc_division_step
- rank.win_placement.{royale,team_royale}
"""

from __future__ import annotations

import math
from typing import Dict, List, Optional

from hairroot.core.config.manager import ConfigManager
from hairroot.core.exceptions import ConfigurationError
from hairroot.core.logging.logger import get_logger
from hairroot.modules.rank.models import RankInfo, RankMode, RankTier

logger = get_logger(__name__)

_DIVISION_NUMERALS = ("I", "II", "III")


class RankService:
    """
    Stateless rank calculator. Reads its tier table once at construction.

    Public Methods
    --------------
    - rank_from_points(points) -> RankInfo
    - points_delta(won, rank, placement=None) -> int
    - apply_delta(points, delta) -> int (floored at 0)
    - coin_multiplier(rank) / npc_multiplier(rank) -> float
    - is_win(mode, placement) -> bool
    """

    def __init__(self, config_manager: ConfigManager) -> None:
        self._config = config_manager
        raw_tiers = config_manager.get("rank.tiers", [])
        if not raw_tiers:
            raise ConfigurationError("rank.tiers", "no rank tiers configured")

        self.tiers: List[RankTier] = sorted(
            (
                RankTier(
                    tier=str(t["tier"]),
                    label=str(t.get("label", t["tier"])),
                    min_points=int(t["min_points"]),
                )
                for t in raw_tiers
            ),
            key=lambda t: t.min_points,
        )
        if self.tiers[0].min_points != 0:
            raise ConfigurationError("rank.tiers", "lowest tier must start at 0 points")

        self.final_tier_range = int(config_manager.get("rank.final_tier_range", 500))

    # ========================================================================
    # Tier / division
    # ========================================================================

    def tier_index(self, tier: str) -> int:
        for idx, entry in enumerate(self.tiers):
            if entry.tier == tier:
                return idx
        raise ConfigurationError("rank.tiers", f"unknown tier {tier!r}")

    def rank_from_points(self, points: int) -> RankInfo:
        points = max(0, int(points))
        index = 0
        for idx, entry in enumerate(self.tiers):
            if points >= entry.min_points:
                index = idx

        current = self.tiers[index]
        if index + 1 < len(self.tiers):
            tier_range = self.tiers[index + 1].min_points - current.min_points
        else:
            tier_range = self.final_tier_range

        points_in_tier = points - current.min_points
        division = 3 - math.floor(points_in_tier / tier_range * 3)
        division = min(3, max(1, division))

        return RankInfo(
            tier=current.tier,
            division=division,
            points=points,
            name=f"{current.label} {_DIVISION_NUMERALS[division - 1]}",
            tier_index=index,
        )

    # ========================================================================
    # Point deltas
    # ========================================================================

    def base_gain(self, rank: RankInfo) -> int:
        base = int(self._config.get("rank.gain.base", 30))
        step = int(self._config.get("rank.gain.step", 3))
        floor = int(self._config.get("rank.gain.floor", 15))
        return max(floor, base - step * rank.tier_index)

    def base_loss(self, rank: RankInfo) -> int:
        base = int(self._config.get("rank.loss.base", 20))
        step = int(self._config.get("rank.loss.step", 2))
        floor = int(self._config.get("rank.loss.floor", 10))
        return max(floor, base - step * rank.tier_index)

    def _placement_multipliers(self) -> Dict[int, float]:
        raw = self._config.get(
            "rank.placement_multipliers", {1: 2.0, 2: 1.5, 3: 1.0, 4: 0.5, 5: 0.5}
        )
        return {int(k): float(v) for k, v in raw.items()}

    def points_delta(
        self, won: bool, rank: RankInfo, placement: Optional[int] = None
    ) -> int:
        """Signed point change for one finished battle."""
        gain = self.base_gain(rank)
        loss = self.base_loss(rank)

        if placement is None:
            return gain if won else -loss

        multiplier = self._placement_multipliers().get(int(placement))
        if multiplier is None:
            return -loss
        return math.floor(gain * multiplier)

    @staticmethod
    def apply_delta(points: int, delta: int) -> int:
        return max(0, int(points) + int(delta))

    def is_win(self, mode: RankMode | str, placement: int) -> bool:
        """Whether a placement counts as a win in a placement-based mode."""
        mode = RankMode(mode)
        if mode is RankMode.BATTLE:
            return placement == 1
        threshold = int(
            self._config.get(
                f"rank.win_placement.{mode.value}",
                3 if mode is RankMode.ROYALE else 2,
            )
        )
        return placement <= threshold

    # ========================================================================
    # Multipliers
    # ========================================================================

    def coin_multiplier(self, rank: RankInfo) -> float:
        step = float(self._config.get("rank.coin_multiplier_step", 0.1))
        return 1 + rank.tier_index * step

    def npc_multiplier(self, rank: RankInfo) -> float:
        tier_step = float(self._config.get("rank.npc_tier_step", 0.2))
        division_step = float(self._config.get("rank.npc_division_step", 0.05))
        return 1 + rank.tier_index * tier_step + (3 - rank.division) * division_step
