"""Weighted gacha draws and duplicate-based evolution."""

from hairroot.modules.gacha.models import EvolutionPreview, PullResult
from hairroot.modules.gacha.service import GachaService

__all__ = ["EvolutionPreview", "GachaService", "PullResult"]
