"""Experience curves, level scaling and training."""

from hairroot.modules.progression.service import ProgressionService

__all__ = ["ProgressionService"]
