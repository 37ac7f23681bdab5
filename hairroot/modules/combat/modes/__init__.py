"""One ``Battle`` subclass per game mode."""

from hairroot.modules.combat.modes.boss_raid import BossRaidBattle, PartyTactics
from hairroot.modules.combat.modes.duel import DuelBattle, DuelRules, judge
from hairroot.modules.combat.modes.royale import RoyaleBattle
from hairroot.modules.combat.modes.team_royale import TeamRoyaleBattle

__all__ = [
    "BossRaidBattle",
    "DuelBattle",
    "DuelRules",
    "PartyTactics",
    "RoyaleBattle",
    "TeamRoyaleBattle",
    "judge",
]
