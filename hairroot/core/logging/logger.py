"""
Hair Root Logging Subsystem

Purpose
-------
Structured logging for the engine. Every record carries the ambient battle
context (which player, which battle, which mode) so a whole battle can be
followed through the gacha, combat and reward services.

Responsibilities
----------------
- Install one non-blocking queue handler on the root logger
- Enrich records with the context fields in ``CONTEXT_FIELDS``
- Render JSON (production / ``LOG_JSON``) or colored text (terminal)
- Report queue health for diagnostics

Usage
-----
>>> logger = get_logger(__name__)
>>> with LogContext(battle_id="b-1", mode="royale"):
...     logger.info("Round resolved", extra={"round": 3})

Design Decisions
----------------
- Values passed with ``extra=`` win over the ambient context
- The JSON payload keeps context fields at the top level and everything
  else passed with ``extra=`` under ``"extra"``
- A full queue drops records instead of blocking the game loop

Dependencies
------------
- hairroot.core.config.config.Config
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Dict, Optional, Tuple

from hairroot.core.config.config import Config

CONTEXT_FIELDS: Tuple[str, ...] = (
    "player_id",
    "battle_id",
    "mode",
    "correlation_id",
    "component",
    "operation",
)

_log_context: ContextVar[Dict[str, Any]] = ContextVar("hairroot_log_context", default={})

_ROOT_FLAG = "_hairroot_logging_initialized"
_ROOT_HANDLER = "_hairroot_queue_handler"


# ============================================================================
# Configuration
# ============================================================================


@dataclass(frozen=True, slots=True)
class LoggerConfig:
    """Formats and limits; levels and switches are read from ``Config``."""

    CONSOLE_FORMAT: str = "%(asctime)s | %(levelname)-8s | %(name)-28s | %(message)s%(battle_tag)s"
    DATE_FORMAT: str = "%H:%M:%S"
    QUEUE_MAX_SIZE: int = 10_000
    QUIET_LOGGERS: Tuple[str, ...] = ("asyncio", "aiosqlite", "sqlalchemy.engine")

    @property
    def environment(self) -> str:
        return str(Config.ENVIRONMENT).lower()

    @property
    def log_level(self) -> int:
        level = Config.LOG_LEVEL if isinstance(Config.LOG_LEVEL, str) else "INFO"
        return getattr(logging, level.upper(), logging.INFO)

    @property
    def use_json(self) -> bool:
        return bool(Config.LOG_JSON) or self.environment == "production"

    @property
    def use_colors(self) -> bool:
        return not self.use_json and bool(Config.LOG_COLORS) and sys.stdout.isatty()


LOGGER_CONFIG = LoggerConfig()


# ============================================================================
# Health
# ============================================================================


@dataclass(slots=True)
class LoggingMetrics:
    records_enqueued: int = 0
    records_dropped: int = 0
    listener_errors: int = 0


@dataclass(frozen=True, slots=True)
class LoggingHealth:
    initialized: bool
    queue_size: int
    queue_max_size: int
    records_enqueued: int
    records_dropped: int
    listener_errors: int


_metrics = LoggingMetrics()
_queue: Optional["queue.Queue[logging.LogRecord]"] = None
_listener: Optional[QueueListener] = None


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    """Copies the ambient log context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _log_context.get({})
        for key, value in context.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        if not getattr(record, "component", None):
            record.component = record.name.rsplit(".", 1)[-1]
        return True


def _battle_tag(record: logging.LogRecord) -> str:
    battle_id = getattr(record, "battle_id", None)
    if not battle_id:
        return ""
    mode = getattr(record, "mode", None)
    return f"  [{mode}:{battle_id}]" if mode else f"  [{battle_id}]"


class PlainFormatter(logging.Formatter):
    """Console text with a ``[mode:battle]`` suffix when a battle is in scope."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        record.battle_tag = _battle_tag(record)
        return super().format(record)


class ColoredFormatter(PlainFormatter):
    COLORS: Dict[str, str] = {
        "DEBUG": "\033[90m",
        "INFO": "\033[94m",
        "WARNING": "\033[93m",
        "ERROR": "\033[91m",
        "CRITICAL": "\033[91m\033[1m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        levelname = record.levelname
        color = self.COLORS.get(levelname)
        if color:
            record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


# Attributes every LogRecord has; anything else arrived through ``extra=``.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "battle_tag"}


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and key not in CONTEXT_FIELDS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


# ============================================================================
# Queue Handler & Listener
# ============================================================================


class DroppingQueueHandler(QueueHandler):
    """Never blocks: a full queue counts and drops the record."""

    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _metrics.records_dropped += 1
            sys.stderr.write("hairroot: log queue full, record dropped\n")
        else:
            _metrics.records_enqueued += 1


class CountingQueueListener(QueueListener):
    def handleError(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _metrics.listener_errors += 1
        sys.stderr.write("hairroot: log handler failed while writing a record\n")


# ============================================================================
# Setup / Teardown
# ============================================================================


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(LOGGER_CONFIG.log_level)
    if LOGGER_CONFIG.use_json:
        handler.setFormatter(JSONFormatter())
    else:
        formatter_cls = ColoredFormatter if LOGGER_CONFIG.use_colors else PlainFormatter
        handler.setFormatter(
            formatter_cls(fmt=LOGGER_CONFIG.CONSOLE_FORMAT, datefmt=LOGGER_CONFIG.DATE_FORMAT)
        )
    return handler


def setup_logging() -> None:
    """Install the queue handler on the root logger. Idempotent."""
    global _metrics, _queue, _listener

    root = logging.getLogger()
    if getattr(root, _ROOT_FLAG, False):
        return

    _metrics = LoggingMetrics()
    _queue = queue.Queue(LOGGER_CONFIG.QUEUE_MAX_SIZE)
    _listener = CountingQueueListener(_queue, _console_handler(), respect_handler_level=True)
    _listener.start()

    handler = DroppingQueueHandler(_queue)
    handler.setLevel(LOGGER_CONFIG.log_level)
    handler.addFilter(ContextFilter())
    root.setLevel(LOGGER_CONFIG.log_level)
    root.addHandler(handler)

    for name in LOGGER_CONFIG.QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    setattr(root, _ROOT_FLAG, True)
    setattr(root, _ROOT_HANDLER, handler)

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={
            "environment": LOGGER_CONFIG.environment,
            "log_level": logging.getLevelName(LOGGER_CONFIG.log_level),
            "json": LOGGER_CONFIG.use_json,
        },
    )


def shutdown_logging() -> None:
    """Flush and detach the queue handler. Safe to call twice."""
    global _queue, _listener

    root = logging.getLogger()
    if not getattr(root, _ROOT_FLAG, False):
        return

    if _listener is not None:
        _listener.stop()
        for handler in _listener.handlers:
            handler.flush()
            handler.close()
        _listener = None

    handler = getattr(root, _ROOT_HANDLER, None)
    if handler is not None:
        root.removeHandler(handler)
        handler.close()

    setattr(root, _ROOT_FLAG, False)
    setattr(root, _ROOT_HANDLER, None)
    _queue = None


def get_logging_health() -> LoggingHealth:
    return LoggingHealth(
        initialized=bool(getattr(logging.getLogger(), _ROOT_FLAG, False)),
        queue_size=_queue.qsize() if _queue is not None else 0,
        queue_max_size=_queue.maxsize if _queue is not None else 0,
        records_enqueued=_metrics.records_enqueued,
        records_dropped=_metrics.records_dropped,
        listener_errors=_metrics.listener_errors,
    )


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


def _merge(base: Dict[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in fields.items():
        if value is None:
            continue
        merged[key] = str(value) if key == "player_id" else value
    return merged


class LogContext:
    """
    Scoped log context, usable as a sync or async context manager.

    Nested contexts inherit the outer fields. A fresh correlation id is
    generated unless one is passed in.
    """

    def __init__(
        self,
        player_id: Optional[str] = None,
        battle_id: Optional[str] = None,
        mode: Optional[str] = None,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        self.context = _merge(
            _log_context.get({}),
            {
                "player_id": player_id,
                "battle_id": battle_id,
                "mode": mode,
                "component": component,
                "operation": operation,
                "correlation_id": correlation_id or uuid.uuid4().hex[:8],
                **extra,
            },
        )
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def set_log_context(
    player_id: Optional[str] = None,
    battle_id: Optional[str] = None,
    mode: Optional[str] = None,
    component: Optional[str] = None,
    operation: Optional[str] = None,
    correlation_id: Optional[str] = None,
    **extra: Any,
) -> None:
    """Update the context for the rest of the current task (no scope)."""
    _log_context.set(
        _merge(
            _log_context.get({}),
            {
                "player_id": player_id,
                "battle_id": battle_id,
                "mode": mode,
                "component": component,
                "operation": operation,
                "correlation_id": correlation_id,
                **extra,
            },
        )
    )


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get({}))


def clear_log_context() -> None:
    _log_context.set({})


setup_logging()
