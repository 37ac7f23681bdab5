"""Synthetic opponents drawn from the catalog and scaled to the player's rank."""

from hairroot.modules.npc.generator import NpcGenerator

__all__ = ["NpcGenerator"]
