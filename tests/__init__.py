"""
Hair Root Engine Test Suite
===========================

Test Organization
-----------------
- tests/unit/core/     : config, events, logging and error plumbing
- tests/unit/domain/   : catalog, gacha, progression, rank, NPCs, game state
- tests/unit/combat/   : battle engine, modes, battle service and rewards
- tests/integration/   : save slots on an in-memory aiosqlite database

Markers
-------
unit, domain, combat, integration (see pyproject.toml). Tests follow the
Arrange / Act / Assert layout.
"""
