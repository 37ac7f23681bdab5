"""
Structured logging for the engine: the queue-backed root setup, battle-aware
formatters and the per-task log context.
"""

from hairroot.core.logging.logger import (
    CONTEXT_FIELDS,
    LogContext,
    clear_log_context,
    get_log_context,
    get_logger,
    get_logging_health,
    set_log_context,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "CONTEXT_FIELDS",
    "LogContext",
    "clear_log_context",
    "get_log_context",
    "get_logger",
    "get_logging_health",
    "set_log_context",
    "setup_logging",
    "shutdown_logging",
]
