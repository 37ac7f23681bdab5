"""
Core infrastructure layer for the Hair Root engine.

Re-exports configuration, logging, events, persistence and infrastructure
exceptions so services can import them from one place. No logic lives here.
The config package is imported first because the logger reads ``Config``.
"""

from __future__ import annotations

from hairroot.core.config import Config, ConfigManager
from hairroot.core.database import DatabaseService
from hairroot.core.event import EventBus, ListenerPriority
from hairroot.core.exceptions import (
    ConfigurationError,
    DatabaseError,
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    ErrorSeverity,
    HairRootError,
    HairRootInfrastructureException,
)
from hairroot.core.logging import LogContext, get_logger

__all__ = [
    "Config",
    "ConfigManager",
    "DatabaseService",
    "EventBus",
    "ListenerPriority",
    "LogContext",
    "get_logger",
    "ErrorSeverity",
    "HairRootError",
    "HairRootInfrastructureException",
    "ConfigurationError",
    "DatabaseError",
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
