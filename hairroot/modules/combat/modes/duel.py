"""
Duel
====

Purpose
-------
1v1 tug-of-war. A scalar pull progress starts at 50 and is clamped to
[0, 100]; the human pulls it toward 0 and the opponent toward 100.

Timing
------
The ten second window is modelled as a fixed number of ticks (100). Each
``tick()`` applies one opponent pull; taps registered with ``tap()`` land
immediately. Wall-clock time never matters, so a fixed tap schedule and a
seeded rng always give the same result.

- human tap   = (0.8 + speed/100 * 0.5 + grip/100 * 0.3) * element
- opponent    = 0.5 + rng.random() * opponent_speed/100

Judging
-------
progress < 45 wins, > 55 loses; otherwise stat totals decide:
``p+s+g + taps`` against ``p+s+g + floor(rng.random() * 50)``, equal is a
draw.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Sequence

from hairroot.core.config.manager import ConfigManager
from hairroot.core.logging.logger import get_logger
from hairroot.modules.combat.engine import (
    ActionResult,
    Battle,
    BattleMode,
    BattleOutcome,
    BattlePhase,
    BattleResult,
    BATTLE_NOT_ACTIVE,
)
from hairroot.modules.combat.shared.elements import ElementResolver
from hairroot.modules.combat.shared.participant import BattleParticipant
from hairroot.modules.shared.formulas import clamp, floor_int

logger = get_logger(__name__)


@dataclass(frozen=True)
class DuelRules:
    ticks: int = 100
    start_progress: float = 50.0
    win_below: float = 45.0
    lose_above: float = 55.0
    tap_base: float = 0.8
    speed_weight: float = 0.5
    grip_weight: float = 0.3
    npc_tick_base: float = 0.5
    tiebreak_random: int = 50

    @classmethod
    def from_config(cls, config_manager: ConfigManager) -> "DuelRules":
        def read(key: str, default: float) -> float:
            return float(config_manager.get(f"combat.duel.{key}", default))

        return cls(
            ticks=int(read("ticks", 100)),
            start_progress=read("start_progress", 50.0),
            win_below=read("win_below", 45.0),
            lose_above=read("lose_above", 55.0),
            tap_base=read("tap.base", 0.8),
            speed_weight=read("tap.speed_weight", 0.5),
            grip_weight=read("tap.grip_weight", 0.3),
            npc_tick_base=read("npc_tick.base", 0.5),
            tiebreak_random=int(read("tiebreak_random", 50)),
        )


def judge(
    progress: float,
    human_total: int,
    opponent_total: int,
    rules: DuelRules = DuelRules(),
) -> BattleOutcome:
    """Outcome for a final progress value and tiebreak totals."""
    if progress < rules.win_below:
        return BattleOutcome.WIN
    if progress > rules.lose_above:
        return BattleOutcome.LOSE
    if human_total > opponent_total:
        return BattleOutcome.WIN
    if human_total < opponent_total:
        return BattleOutcome.LOSE
    return BattleOutcome.DRAW


class DuelBattle(Battle):
    mode = BattleMode.DUEL

    def __init__(
        self,
        human: BattleParticipant,
        opponent: BattleParticipant,
        rng: random.Random,
        elements: ElementResolver,
        rules: Optional[DuelRules] = None,
        battle_id: Optional[str] = None,
    ) -> None:
        super().__init__([human, opponent], None, rng, human_id=human.id, battle_id=battle_id)
        self.opponent_id = opponent.id
        self.rules = rules or DuelRules()
        self.element_multiplier = elements.get_multiplier(human.element, opponent.element)
        self.progress = float(self.rules.start_progress)
        self.ticks_remaining = self.rules.ticks
        self.taps = 0
        self.outcome: Optional[BattleOutcome] = None
        self.human_total: Optional[int] = None
        self.opponent_total: Optional[int] = None

    @property
    def opponent(self) -> BattleParticipant:
        opponent = self.participant(self.opponent_id)
        assert opponent is not None
        return opponent

    @property
    def tap_power(self) -> float:
        stats = self.human.stats if self.human else None
        if stats is None:
            return 0.0
        r = self.rules
        base = r.tap_base + stats.speed / 100 * r.speed_weight + stats.grip / 100 * r.grip_weight
        return base * self.element_multiplier

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def act(self, skill_id: str, target_ids: Sequence[int] = ()) -> ActionResult:
        """Duels take taps, not skills."""
        return ActionResult.rejected(self.human_id, skill_id, BATTLE_NOT_ACTIVE)

    def tap(self) -> float:
        """Register one human tap; returns the new progress."""
        if not self.accepting_actions:
            return self.progress
        self.taps += 1
        self.progress = clamp(self.progress - self.tap_power, 0.0, 100.0)
        return self.progress

    def tick(self) -> float:
        """Advance one tick with one opponent pull; resolves on the last tick."""
        if not self.accepting_actions:
            return self.progress
        pull = self.rules.npc_tick_base + self.rng.random() * (self.opponent.stats.speed / 100)
        self.progress = clamp(self.progress + pull, 0.0, 100.0)
        self.ticks_remaining -= 1
        self.round += 1
        if self.ticks_remaining <= 0:
            self.resolve()
        return self.progress

    def play(self, taps_per_tick: Sequence[int] = ()) -> BattleOutcome:
        """
        Run the whole window: before tick ``i`` the human taps
        ``taps_per_tick[i]`` times (0 past the end of the sequence).
        """
        self.start()
        i = 0
        while self.accepting_actions:
            for _ in range(taps_per_tick[i] if i < len(taps_per_tick) else 0):
                self.tap()
            self.tick()
            i += 1
        assert self.outcome is not None
        return self.outcome

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self) -> BattleOutcome:
        human, opponent = self.human, self.opponent
        assert human is not None
        self.human_total = human.stats.total + self.taps
        self.opponent_total = opponent.stats.total + floor_int(
            self.rng.random() * self.rules.tiebreak_random
        )
        self.outcome = judge(self.progress, self.human_total, self.opponent_total, self.rules)
        logger.debug(
            "Duel resolved",
            extra={
                "battle_id": self.battle_id,
                "progress": self.progress,
                "taps": self.taps,
                "human_total": self.human_total,
                "opponent_total": self.opponent_total,
            },
        )
        self._finish()
        return self.outcome

    def _decided(self) -> bool:
        return self.outcome is not None

    def _auto_actions(self, acted) -> None:
        return None

    def result(self) -> Optional[BattleResult]:
        human = self.human
        if self.phase is not BattlePhase.FINISHED or self.outcome is None or human is None:
            return None
        return BattleResult(
            battle_id=self.battle_id,
            mode=self.mode,
            outcome=self.outcome,
            creature_ids=(human.creature_id,) if human.creature_id is not None else (),
            rounds=self.round,
            details={
                "progress": round(self.progress, 2),
                "taps": self.taps,
                "humanTotal": self.human_total,
                "opponentTotal": self.opponent_total,
            },
        )
