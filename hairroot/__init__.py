"""
Hair Root battle and progression engine.

``hairroot.core`` holds infrastructure (config, logging, events, persistence).
``hairroot.modules`` holds the game domain: catalog, gacha, progression,
rank, NPC generation, game state and the combat engine.
"""

__version__ = "0.1.0"
