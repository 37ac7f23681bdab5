"""
Database subsystem: async engine lifecycle and transaction helpers.
"""

from hairroot.core.database.service import (
    DatabaseInitializationError,
    DatabaseService,
)

__all__ = ["DatabaseService", "DatabaseInitializationError"]
