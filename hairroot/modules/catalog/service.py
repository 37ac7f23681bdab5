"""
Catalog Service

Purpose
-------
Read-only registry of creature definitions loaded from ``catalog.creatures``.

Domain
------
- Lookup by id (boss-only entries included)
- Gacha-eligible listings by rarity (boss-only entries excluded)
- Load-time validation of skills and evolution links

Design Decisions
----------------
- Definitions are parsed once in the constructor; the service never mutates.
- A broken catalog is a programmer error and raises ``ConfigurationError``
  at construction instead of surfacing later during a battle.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from hairroot.core.config.manager import ConfigManager
from hairroot.core.exceptions import ConfigurationError
from hairroot.core.logging.logger import get_logger
from hairroot.modules.catalog.models import CreatureDefinition, Rarity
from hairroot.modules.shared.exceptions import HairRootDomainException, NotFoundError

logger = get_logger(__name__)


# ============================================================================
# CatalogService
# ============================================================================


class CatalogService:
    """
    Registry of every hair root definition.

    Public Methods
    --------------
    - find(id) -> definition or None
    - require(id) -> definition, raises NotFoundError
    - filter_by_rarity(rarity) -> gacha-eligible definitions of that rarity
    - all() -> gacha-eligible definitions
    - all_including_boss() -> every definition
    - gacha_pool(rarity) -> alias of filter_by_rarity used by the gacha

    Configuration Keys
    ------------------
    - catalog.creatures (list of creature mappings)
    """

    def __init__(self, config_manager: ConfigManager) -> None:
        self._config = config_manager
        self._by_id: Dict[int, CreatureDefinition] = {}

        raw = config_manager.get("catalog.creatures", [])
        if not isinstance(raw, list) or not raw:
            raise ConfigurationError("catalog.creatures", "catalog is empty or not a list")

        for entry in raw:
            try:
                definition = CreatureDefinition.from_dict(entry)
            except (KeyError, TypeError, ValueError, HairRootDomainException) as exc:
                raise ConfigurationError(
                    "catalog.creatures", f"invalid creature entry {entry!r}: {exc}"
                ) from exc
            if definition.id in self._by_id:
                raise ConfigurationError(
                    "catalog.creatures", f"duplicate creature id {definition.id}"
                )
            self._by_id[definition.id] = definition

        self._validate_evolution_links()

        logger.info(
            "Catalog loaded",
            extra={
                "creatures": len(self._by_id),
                "gacha_eligible": len(self.all()),
            },
        )

    def _validate_evolution_links(self) -> None:
        for definition in self._by_id.values():
            if definition.evolves_to is None:
                continue
            target = self._by_id.get(definition.evolves_to)
            if target is None:
                raise ConfigurationError(
                    "catalog.creatures",
                    f"creature {definition.id} evolves into unknown id {definition.evolves_to}",
                )
            if target.rarity.order < definition.rarity.next_tier().order:
                raise ConfigurationError(
                    "catalog.creatures",
                    f"creature {definition.id} evolves into lower tier creature {target.id}",
                )

    # ========================================================================
    # Lookup
    # ========================================================================

    def find(self, creature_id: int) -> Optional[CreatureDefinition]:
        return self._by_id.get(creature_id)

    def require(self, creature_id: int) -> CreatureDefinition:
        definition = self._by_id.get(creature_id)
        if definition is None:
            raise NotFoundError("Creature", creature_id)
        return definition

    def filter_by_rarity(self, rarity: Rarity | str) -> List[CreatureDefinition]:
        rarity = Rarity(rarity)
        return [d for d in self.all() if d.rarity is rarity]

    def all(self) -> List[CreatureDefinition]:
        return [d for d in self._by_id.values() if not d.boss_only]

    def all_including_boss(self) -> List[CreatureDefinition]:
        return list(self._by_id.values())

    def gacha_pool(self, rarity: Rarity | str) -> List[CreatureDefinition]:
        return self.filter_by_rarity(rarity)

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, creature_id: object) -> bool:
        return creature_id in self._by_id
