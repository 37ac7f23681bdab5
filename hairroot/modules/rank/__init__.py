"""Rank points model: tiers, divisions, point deltas and reward multipliers."""

from hairroot.modules.rank.models import RankInfo, RankMode, RankTier
from hairroot.modules.rank.service import RankService

__all__ = ["RankInfo", "RankMode", "RankService", "RankTier"]
