"""
NPC Generator
=============

Purpose
-------
Builds synthetic opponents (and team-royale allies) from the catalog,
scaled to the player's rank so stronger players meet stronger opposition.

Algorithm
---------
1. Build a rarity-weighted pool for the player's rank tier
   (``npc.tier_weights.<tier>``; unlisted rarities weigh 1)
2. Draw one definition from the pool
3. Multiply its base stats by the strength multiplier (floored)
4. Roll a level in [level_min, level_max] and apply level scaling
5. max_hp = floor((base_hp + power + grip) * multiplier)

Participant ids are ``index + npc.id_offset`` and names cycle through the
configured pool by index.
"""

from __future__ import annotations

import random
from typing import Dict, List, Optional

from hairroot.core.config.manager import ConfigManager
from hairroot.core.logging.logger import get_logger
from hairroot.modules.catalog.models import CreatureDefinition, Rarity
from hairroot.modules.catalog.service import CatalogService
from hairroot.modules.combat.shared.participant import BattleParticipant, ParticipantFactory
from hairroot.modules.shared.formulas import floor_int

logger = get_logger(__name__)

_FALLBACK_NAMES = ["NPC"]


class NpcGenerator:
    """
    Opponent factory shared by every battle mode.

    Args:
        catalog: Creature registry (boss-only entries are never drawn)
        factory: Participant factory for level scaling and skill sets
        config_manager: Reads the ``npc.*`` keys
        rng: Random source; inject a seeded ``random.Random`` for tests
    """

    def __init__(
        self,
        catalog: CatalogService,
        factory: ParticipantFactory,
        config_manager: ConfigManager,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.catalog = catalog
        self.factory = factory
        self.rng = rng or random.Random()
        self.id_offset = int(config_manager.get("npc.id_offset", 100))
        self.level_min = int(config_manager.get("npc.level_min", 1))
        self.level_max = int(config_manager.get("npc.level_max", 5))
        self._names: Dict[str, List[str]] = {
            str(k): [str(n) for n in v]
            for k, v in (config_manager.get("npc.names", {}) or {}).items()
        }
        self._tier_weights: Dict[str, Dict[str, int]] = {
            str(tier): {str(r): int(w) for r, w in (weights or {}).items()}
            for tier, weights in (config_manager.get("npc.tier_weights", {}) or {}).items()
        }

    def rarity_weight(self, tier: str, rarity: Rarity) -> int:
        return self._tier_weights.get(tier, {}).get(rarity.value, 1)

    def weighted_pool(self, tier: str) -> tuple[List[CreatureDefinition], List[int]]:
        pool = self.catalog.all()
        return pool, [self.rarity_weight(tier, d.rarity) for d in pool]

    def name_for(self, index: int, pool: str = "default") -> str:
        names = self._names.get(pool) or self._names.get("default") or _FALLBACK_NAMES
        return names[index % len(names)]

    def generate(
        self,
        index: int,
        tier: str,
        multiplier: float,
        team: Optional[int] = None,
        name_pool: str = "default",
    ) -> BattleParticipant:
        """
        Create NPC number ``index``.

        ``team`` defaults to the participant id, which makes the NPC its own
        team (free-for-all).
        """
        pool, weights = self.weighted_pool(tier)
        definition = self.rng.choices(pool, weights=weights, k=1)[0]
        level = self.rng.randint(self.level_min, self.level_max)
        participant_id = index + self.id_offset

        scaled = definition.scaled(multiplier)
        stats = self.factory.progression.effective_stats(scaled, level)
        max_hp = floor_int(self.factory.progression.max_hp(stats) * multiplier)

        npc = self.factory.from_definition(
            scaled,
            participant_id=participant_id,
            level=level,
            team=participant_id if team is None else team,
            name=self.name_for(index, name_pool),
            max_hp=max_hp,
            is_npc=True,
        )
        logger.debug(
            "NPC generated",
            extra={
                "participant_id": participant_id,
                "creature_id": definition.id,
                "rarity": definition.rarity.value,
                "level": level,
                "tier": tier,
                "multiplier": multiplier,
            },
        )
        return npc
