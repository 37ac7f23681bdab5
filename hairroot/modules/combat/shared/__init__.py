"""Building blocks shared by every battle mode."""

from hairroot.modules.combat.shared.effects import EffectExecutor
from hairroot.modules.combat.shared.elements import ElementResolver
from hairroot.modules.combat.shared.formulas import CombatFormulas, DamageInput, DamageResult
from hairroot.modules.combat.shared.log import BattleLog, BattleLogEntry
from hairroot.modules.combat.shared.participant import (
    BattleParticipant,
    EffectType,
    ParticipantFactory,
    StatusEffect,
)

__all__ = [
    "BattleLog",
    "BattleLogEntry",
    "BattleParticipant",
    "CombatFormulas",
    "DamageInput",
    "DamageResult",
    "EffectExecutor",
    "EffectType",
    "ElementResolver",
    "ParticipantFactory",
    "StatusEffect",
]
