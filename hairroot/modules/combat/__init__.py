"""
Turn-based combat: the shared battle state machine, per-mode battles,
battle construction and reward settlement.

Only the engine types are re-exported here. Import
``hairroot.modules.combat.service`` and ``hairroot.modules.combat.rewards``
directly; they depend on the NPC generator, which itself builds on
``combat.shared``.
"""

from hairroot.modules.combat.engine import (
    ActionResult,
    Battle,
    BattleMode,
    BattleOutcome,
    BattlePhase,
    BattleResult,
    SkillExecutor,
    TargetPolicy,
)

__all__ = [
    "ActionResult",
    "Battle",
    "BattleMode",
    "BattleOutcome",
    "BattlePhase",
    "BattleResult",
    "SkillExecutor",
    "TargetPolicy",
]
