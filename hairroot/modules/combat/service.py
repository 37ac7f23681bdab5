"""
Battle Service

Purpose
-------
Builds ready-to-start battles for every mode from the player's game state:
the human participant from the selected (or chosen) collection entries,
opponents from the NPC generator scaled to the player's rank in that mode.

Responsibilities
----------------
- Own the combat collaborators (element table, formulas, effect executor,
  participant factory, NPC generator) and one injected ``random.Random``
- Create duel / royale / team royale / boss raid battles
- Expose the boss roster for boss selection

Failure Semantics
-----------------
Builders return ``None`` when the player has no usable creature or the
requested party is invalid; nothing is mutated. Rewards are not handled
here, see ``BattleRewardService``.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from hairroot.modules.catalog.models import CreatureDefinition, Skill
from hairroot.modules.catalog.service import CatalogService
from hairroot.modules.combat.engine import BattleMode, SkillExecutor
from hairroot.modules.combat.modes.boss_raid import BossRaidBattle, PartyTactics
from hairroot.modules.combat.modes.duel import DuelBattle, DuelRules
from hairroot.modules.combat.modes.royale import RoyaleBattle
from hairroot.modules.combat.modes.team_royale import TeamRoyaleBattle
from hairroot.modules.combat.shared.effects import EffectExecutor
from hairroot.modules.combat.shared.elements import ElementResolver
from hairroot.modules.combat.shared.formulas import CombatFormulas
from hairroot.modules.combat.shared.participant import BattleParticipant, ParticipantFactory
from hairroot.modules.npc.generator import NpcGenerator
from hairroot.modules.progression.service import ProgressionService
from hairroot.modules.rank.service import RankService
from hairroot.modules.shared.base_service import BaseService
from hairroot.modules.shared.exceptions import NotFoundError

if TYPE_CHECKING:
    from logging import Logger

    from hairroot.core.config.manager import ConfigManager
    from hairroot.core.event.bus import EventBus
    from hairroot.modules.state.service import GameStateService

HUMAN_PARTICIPANT_ID = 0


class BattleService(BaseService):
    """
    Battle construction for every mode.

    Args:
        catalog: Creature registry
        progression: Level scaling
        ranks: Rank tables (NPC strength per rank)
        config_manager: Balance configuration
        event_bus: Event bus
        rng: Random source shared by the battles and the NPC generator
    """

    def __init__(
        self,
        catalog: CatalogService,
        progression: ProgressionService,
        ranks: RankService,
        config_manager: ConfigManager,
        event_bus: EventBus,
        rng: Optional[random.Random] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self.catalog = catalog
        self.progression = progression
        self.ranks = ranks
        self.rng = rng or random.Random()
        self.elements = ElementResolver(config_manager)
        self.formulas = CombatFormulas(self.elements, config_manager)
        self.effects = EffectExecutor(config_manager)
        self.factory = ParticipantFactory(progression, config_manager)
        self.npcs = NpcGenerator(catalog, self.factory, config_manager, self.rng)

    # ========================================================================
    # Shared helpers
    # ========================================================================

    @property
    def builtin_ids(self) -> Tuple[str, str]:
        return (self.factory.normal_attack_id, self.factory.normal_defense_id)

    def executor(self, cooldown_extra: int = 0) -> SkillExecutor:
        return SkillExecutor(
            self.formulas,
            self.effects,
            self.rng,
            default_max_targets=int(self.get_config("combat.default_max_targets", 3)),
            cooldown_extra=cooldown_extra,
            normal_attack_id=self.factory.normal_attack_id,
        )

    def opponent_scaling(self, state: GameStateService, mode: BattleMode) -> Tuple[str, float]:
        """(rank tier, NPC strength multiplier) for the player's rank in ``mode``."""
        rank_mode = mode.rank_mode
        if rank_mode is None:
            return self.ranks.tiers[0].tier, 1.0
        rank = state.rank_info(rank_mode)
        return rank.tier, self.ranks.npc_multiplier(rank)

    def _human(self, state: GameStateService) -> Optional[BattleParticipant]:
        holding = state.selected
        if holding is None or holding.definition is None:
            self.log.debug("Battle not created: no creature selected")
            return None
        return self.factory.from_collected(holding, participant_id=HUMAN_PARTICIPANT_ID)

    def _created(self, battle, **context) -> None:
        self.log.info(
            "Battle created",
            extra={
                "battle_id": battle.battle_id,
                "mode": battle.mode.value,
                "participants": len(battle.participants),
                **context,
            },
        )

    # ========================================================================
    # Duel
    # ========================================================================

    def create_duel(self, state: GameStateService) -> Optional[DuelBattle]:
        human = self._human(state)
        if human is None:
            return None
        tier, multiplier = self.opponent_scaling(state, BattleMode.DUEL)
        opponent = self.npcs.generate(1, tier, multiplier)

        battle = DuelBattle(
            human, opponent, self.rng, self.elements, rules=DuelRules.from_config(self.config)
        )
        self._created(battle, tier=tier, npc_multiplier=multiplier)
        return battle

    # ========================================================================
    # Solo royale
    # ========================================================================

    def create_royale(self, state: GameStateService) -> Optional[RoyaleBattle]:
        human = self._human(state)
        if human is None:
            return None
        tier, multiplier = self.opponent_scaling(state, BattleMode.ROYALE)
        size = int(self.get_config("combat.royale.participants", 8))

        participants = [human]
        participants.extend(self.npcs.generate(i, tier, multiplier) for i in range(1, size))

        battle = RoyaleBattle(participants, self.executor(), self.rng, human_id=human.id)
        battle.builtin_ids = self.builtin_ids
        self._created(battle, tier=tier, npc_multiplier=multiplier)
        return battle

    # ========================================================================
    # Team royale
    # ========================================================================

    def create_team_royale(self, state: GameStateService) -> Optional[TeamRoyaleBattle]:
        human = self._human(state)
        if human is None:
            return None
        tier, multiplier = self.opponent_scaling(state, BattleMode.TEAM_ROYALE)
        teams = int(self.get_config("combat.team_royale.teams", 4))
        team_size = int(self.get_config("combat.team_royale.team_size", 3))
        team_names = list(self.get_config("combat.team_royale.team_names", []) or [])

        participants = [human]
        index = 1
        for team in range(teams):
            members = team_size - 1 if team == human.team else team_size
            for _ in range(members):
                participants.append(
                    self.npcs.generate(index, tier, multiplier, team=team, name_pool="team_royale")
                )
                index += 1

        battle = TeamRoyaleBattle(
            participants, self.executor(), self.rng, human_id=human.id, team_names=team_names
        )
        battle.builtin_ids = self.builtin_ids
        self._created(battle, tier=tier, npc_multiplier=multiplier, teams=teams)
        return battle

    # ========================================================================
    # Boss raid
    # ========================================================================

    def boss_roster(self) -> List[CreatureDefinition]:
        """Bosses available for raids, in configured order."""
        roster: List[CreatureDefinition] = []
        for boss_id in self.get_config("combat.boss_raid.bosses", []) or []:
            definition = self.catalog.find(int(boss_id))
            if definition is None:
                self.log.warning("Unknown boss id in roster", extra={"boss_id": boss_id})
                continue
            roster.append(definition)
        return roster

    def boss_hp(self, boss_id: int) -> int:
        table: Dict[int, int] = {
            int(k): int(v)
            for k, v in (self.get_config("combat.boss_raid.boss_hp", {}) or {}).items()
        }
        return table.get(boss_id, int(self.get_config("combat.boss_raid.default_boss_hp", 5000)))

    def boss_skills(self) -> Tuple[Skill, ...]:
        return tuple(
            Skill.from_dict(raw) for raw in self.get_config("combat.boss_raid.skills", []) or []
        )

    def party_tactics(self) -> PartyTactics:
        return PartyTactics(
            heal_threshold=float(self.get_config("combat.boss_raid.ally_ai.heal_threshold", 0.5)),
            defend_threshold=float(
                self.get_config("combat.boss_raid.ally_ai.defend_threshold", 0.5)
            ),
            defend_chance=float(self.get_config("combat.boss_raid.ally_ai.defend_chance", 0.25)),
        )

    def build_boss(self, definition: CreatureDefinition) -> BattleParticipant:
        multipliers = {
            str(k): float(v)
            for k, v in (self.get_config("combat.boss_raid.multipliers", {}) or {}).items()
        }
        boss = self.factory.from_definition(
            definition,
            participant_id=int(self.get_config("combat.boss_raid.boss_participant_id", 999)),
            level=int(self.get_config("combat.boss_raid.boss_level", 1)),
            team=1,
            is_npc=True,
            skills=self.boss_skills() or None,
            max_hp=self.boss_hp(definition.id),
        )
        boss.damage_multipliers = multipliers
        boss.immune_to_instant_kill = True
        return boss

    def create_boss_raid(
        self,
        state: GameStateService,
        party_ids: Sequence[int],
        boss_id: Optional[int] = None,
    ) -> Optional[BossRaidBattle]:
        """
        Raid with ``party_ids`` (distinct owned creatures, exactly
        ``boss_raid.party_size`` of them) against ``boss_id`` (default: the
        first boss in the roster).
        """
        party_size = int(self.get_config("combat.boss_raid.party_size", 5))
        ids = list(party_ids)
        if len(ids) != party_size or len(set(ids)) != len(ids):
            self.log.debug(
                "Boss raid not created: invalid party size",
                extra={"party_ids": ids, "party_size": party_size},
            )
            return None

        holdings = [state.state.find(cid) for cid in ids]
        if any(h is None or h.definition is None for h in holdings):
            self.log.debug("Boss raid not created: party member not owned", extra={"party_ids": ids})
            return None

        roster = self.boss_roster()
        if boss_id is None:
            if not roster:
                raise NotFoundError("boss", None)
            boss_definition = roster[0]
        else:
            boss_definition = self.catalog.require(boss_id)

        hp_scale = float(self.get_config("combat.boss_raid.party_hp_scale", 1.2))
        party = [
            self.factory.from_collected(holding, participant_id=i, team=0, hp_scale=hp_scale)
            for i, holding in enumerate(holdings)  # type: ignore[arg-type]
        ]
        boss = self.build_boss(boss_definition)

        battle = BossRaidBattle(
            party,
            boss,
            self.executor(int(self.get_config("combat.boss_raid.cooldown_extra", 1))),
            self.rng,
            human_id=party[0].id,
            tactics=self.party_tactics(),
            grant_boss_creature=bool(
                self.get_config("combat.boss_raid.rewards.grant_boss_creature", True)
            ),
        )
        self._created(battle, boss_id=boss_definition.id, boss_hp=boss.max_hp)
        return battle
