"""
Element Resolver
================

Purpose
-------
Turns the ``combat.elements`` matchup table into damage multipliers.

Matchups
--------
- fire > wind > water > fire (1.3 for the winner, 0.7 for the loser)
- light and dark are each advantaged against the other (1.3 both ways)
- divine is advantaged against fire, water and wind, disadvantaged against
  light and dark, while light and dark are advantaged against divine

Design Decisions
----------------
- The table is directed: ``get_multiplier(a, b)`` reads ``elements[a][b]``
  and never infers the reverse pair
- Unlisted pairs, same-element pairs and unknown elements are neutral (1.0)
- Element names are compared case-insensitively
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional

from hairroot.core.config.manager import ConfigManager
from hairroot.core.logging.logger import get_logger
from hairroot.modules.catalog.models import Element

logger = get_logger(__name__)

NEUTRAL = 1.0


def _normalize(element: Optional[Element | str]) -> Optional[str]:
    if element is None:
        return None
    value = element.value if isinstance(element, Element) else str(element)
    return value.lower() or None


# ============================================================================
# ElementResolver
# ============================================================================


class ElementResolver:
    """
    Resolves element advantages using the config-driven matchup table.

    Public Methods
    --------------
    - get_multiplier(attacker, defender) -> damage multiplier
    - has_advantage(attacker, defender) -> multiplier > 1
    - has_disadvantage(attacker, defender) -> multiplier < 1
    - matchups() -> copy of the full table
    """

    def __init__(self, config_manager: ConfigManager) -> None:
        raw = config_manager.get("combat.elements", default={}) or {}
        self._table: Dict[str, Dict[str, float]] = {
            str(attacker).lower(): {
                str(defender).lower(): float(mult) for defender, mult in (row or {}).items()
            }
            for attacker, row in raw.items()
        }
        logger.debug(
            "ElementResolver initialized",
            extra={"attackers": sorted(self._table)},
        )

    def get_multiplier(
        self, attacker: Optional[Element | str], defender: Optional[Element | str]
    ) -> float:
        """
        Damage multiplier for ``attacker`` hitting ``defender``.

        Example:
            >>> resolver.get_multiplier("fire", "wind")
            1.3
            >>> resolver.get_multiplier("wind", "fire")
            0.7
        """
        a, d = _normalize(attacker), _normalize(defender)
        if a is None or d is None or a == d:
            return NEUTRAL
        return self._table.get(a, {}).get(d, NEUTRAL)

    def has_advantage(self, attacker: Element | str, defender: Element | str) -> bool:
        return self.get_multiplier(attacker, defender) > NEUTRAL

    def has_disadvantage(self, attacker: Element | str, defender: Element | str) -> bool:
        return self.get_multiplier(attacker, defender) < NEUTRAL

    def matchups(self) -> Mapping[str, Mapping[str, float]]:
        return {a: dict(row) for a, row in self._table.items()}
