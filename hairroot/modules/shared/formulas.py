"""
Shared Game Formulas

Purpose
-------
Small pure helpers used by both progression and combat math. No state, no
config access.
"""

from __future__ import annotations

import math

# Products such as 140 * 0.7 land a hair under the integer in binary floating
# point; rounding to this many places first keeps floors at the exact value.
_FLOOR_PRECISION = 6


def floor_int(value: float) -> int:
    """Floor ``value`` to an int, ignoring sub-micro floating point noise."""
    return math.floor(round(value, _FLOOR_PRECISION))


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def percent_of(total: int, percent: float) -> int:
    """``floor(total * percent / 100)``."""
    return floor_int(total * percent / 100)
