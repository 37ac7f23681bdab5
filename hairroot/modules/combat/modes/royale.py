"""
Solo battle royale: the human plus seven NPCs, last one standing wins.

Placement is ``participants - eliminated_before``: the first participant out
places last and the survivor places first. When the human drops out the
battle moves to the ``result`` phase and NPC rounds can be spectated with
``advance()``.
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


class RoyaleBattle(Battle):
    mode = BattleMode.ROYALE

    builtin_ids: Sequence[str] = ()

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

    def _decided(self) -> bool:
        return len(self.living()) <= 1

    def _human_done(self) -> bool:
        human = self.human
        return human is not None and human.is_eliminated

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def placement_of(self, participant_id: int) -> Optional[int]:
        """Final placement, or ``None`` while the participant is still in."""
        if participant_id in self.elimination_order:
            return len(self.participants) - self.elimination_order.index(participant_id)
        participant = self.participant(participant_id)
        if participant is not None and participant.is_alive and self._decided():
            return 1
        return None

    def placements(self) -> Dict[int, int]:
        result: Dict[int, int] = {}
        for p in self.participants:
            placement = self.placement_of(p.id)
            if placement is not None:
                result[p.id] = placement
        return result

    def standings(self) -> List[int]:
        """Participant ids ordered best placement first (placed ones only)."""
        return [pid for pid, _ in sorted(self.placements().items(), key=lambda kv: kv[1])]

    def result(self) -> Optional[BattleResult]:
        human = self.human
        if human is None:
            return None
        placement = self.placement_of(human.id)
        if placement is None:
            return None
        return BattleResult(
            battle_id=self.battle_id,
            mode=self.mode,
            outcome=BattleOutcome.WIN if placement == 1 else BattleOutcome.LOSE,
            creature_ids=(human.creature_id,) if human.creature_id is not None else (),
            placement=placement,
            rounds=self.round,
            details={"eliminationOrder": list(self.elimination_order)},
        )
