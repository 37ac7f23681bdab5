"""
Team battle royale: four teams of three, last team standing wins.

The human fights on team 0 with two NPC allies. A team is eliminated once
all of its members are; team placement follows the order teams drop out,
and the human's placement is their team's placement.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Set

from hairroot.modules.combat.engine import (
    Battle,
    BattleMode,
    BattleOutcome,
    BattleResult,
    pick_random_action,
)
from hairroot.modules.combat.shared.participant import BattleParticipant


class TeamRoyaleBattle(Battle):
    mode = BattleMode.TEAM_ROYALE

    builtin_ids: Sequence[str] = ()

    def __init__(self, *args, team_names: Optional[Sequence[str]] = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.team_names: List[str] = list(team_names or [])
        self.team_elimination_order: List[int] = []

    @property
    def teams(self) -> List[int]:
        return sorted({p.team for p in self.participants})

    def team_members(self, team: int) -> List[BattleParticipant]:
        return [p for p in self.participants if p.team == team]

    def living_teams(self) -> List[int]:
        return sorted({p.team for p in self.living()})

    def team_name(self, team: int) -> str:
        if 0 <= team < len(self.team_names):
            return self.team_names[team]
        return f"Team {team + 1}"

    # ------------------------------------------------------------------
    # Mode hooks
    # ------------------------------------------------------------------

    def _auto_actions(self, acted: Set[int]) -> None:
        assert self.executor is not None
        for npc in list(self.participants):
            if self._decided():
                return
            if npc.id in acted or npc.id == self.human_id or not npc.is_alive:
                continue
            skill_id, target_ids = pick_random_action(
                self.executor, self, npc, self.rng, self.builtin_ids
            )
            self.auto_act(npc, skill_id, target_ids)

    def _on_eliminated(self, newly: List[BattleParticipant]) -> None:
        for team in sorted({p.team for p in newly}):
            if team in self.team_elimination_order:
                continue
            if all(m.is_eliminated for m in self.team_members(team)):
                self.team_elimination_order.append(team)
                self.log.add(
                    "team_eliminated",
                    f"{self.team_name(team)}が全滅!",
                    team=team,
                )

    def _decided(self) -> bool:
        return len(self.living_teams()) <= 1

    def _human_done(self) -> bool:
        human = self.human
        return human is not None and human.team in self.team_elimination_order

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def team_placement(self, team: int) -> Optional[int]:
        if team in self.team_elimination_order:
            return len(self.teams) - self.team_elimination_order.index(team)
        if team in self.living_teams() and self._decided():
            return 1
        return None

    def team_placements(self) -> Dict[int, int]:
        result: Dict[int, int] = {}
        for team in self.teams:
            placement = self.team_placement(team)
            if placement is not None:
                result[team] = placement
        return result

    def result(self) -> Optional[BattleResult]:
        human = self.human
        if human is None:
            return None
        placement = self.team_placement(human.team)
        if placement is None:
            return None
        return BattleResult(
            battle_id=self.battle_id,
            mode=self.mode,
            outcome=BattleOutcome.WIN if placement == 1 else BattleOutcome.LOSE,
            creature_ids=(human.creature_id,) if human.creature_id is not None else (),
            placement=placement,
            rounds=self.round,
            details={
                "team": human.team,
                "teamEliminationOrder": list(self.team_elimination_order),
            },
        )
