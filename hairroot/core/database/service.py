"""
Database Service

Purpose
-------
Owns the async engine behind the save-slot store. Only
``GameStateService.load()`` / ``save()`` reach it; battles never do I/O.

Usage
-----
>>> await DatabaseService.initialize("sqlite+aiosqlite:///./hairroot.db")
>>> await DatabaseService.create_all()
>>> async with DatabaseService.get_transaction() as session:
...     session.add(SaveSlot(slot_id="default", payload={...}))

Notes
-----
- All writes go through ``get_transaction()``; store code never commits
- ``sqlite`` in-memory URLs get a single shared connection (``StaticPool``),
  otherwise every session would see its own empty database
- Driver errors inside a transaction surface as ``DatabaseError``
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool
from sqlmodel import SQLModel

from hairroot.core.config.config import Config
from hairroot.core.exceptions import (
    DatabaseError,
    DatabaseInitializationError,
    DatabaseNotInitializedError,
)
from hairroot.core.logging.logger import get_logger

logger = get_logger(__name__)


def _is_sqlite_memory(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.rstrip("/").endswith(":"))


def engine_options(url: str) -> Dict[str, Any]:
    """Keyword arguments for ``create_async_engine`` for this URL."""
    options: Dict[str, Any] = {"echo": bool(Config.DATABASE_ECHO)}
    if _is_sqlite_memory(url):
        options["poolclass"] = StaticPool
        options["connect_args"] = {"check_same_thread": False}
    elif Config.is_testing():
        options["poolclass"] = NullPool
    return options


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000.0, 2)


class DatabaseService:
    """
    Process-wide engine and session factory (class-level state).

    Public API
    ----------
    - initialize(url=None) / shutdown() / is_initialized()
    - create_all()
    - get_session() for reads, get_transaction() for writes
    - health_check()
    """

    _engine: Optional[AsyncEngine] = None
    _sessions: Optional[async_sessionmaker[AsyncSession]] = None
    _url_scheme: Optional[str] = None
    _lifecycle_lock: Optional[asyncio.Lock] = None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    @classmethod
    def _lock(cls) -> asyncio.Lock:
        if cls._lifecycle_lock is None:
            cls._lifecycle_lock = asyncio.Lock()
        return cls._lifecycle_lock

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Create the engine for ``url`` (default ``Config.DATABASE_URL``).

        A second call while initialized does nothing.

        Raises:
            DatabaseInitializationError: empty URL, unknown dialect or
                missing driver
        """
        async with cls._lock():
            if cls._engine is not None:
                return

            database_url = url or Config.DATABASE_URL
            if not isinstance(database_url, str) or not database_url:
                raise DatabaseInitializationError("DATABASE_URL must be a non-empty string")

            try:
                engine = create_async_engine(database_url, **engine_options(database_url))
            except Exception as exc:
                logger.error(
                    "Database engine could not be created",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                )
                raise DatabaseInitializationError(
                    f"Database initialization failed: {exc}"
                ) from exc

            cls._engine = engine
            cls._sessions = async_sessionmaker(bind=engine, expire_on_commit=False)
            cls._url_scheme = database_url.split(":", 1)[0]
            logger.info("Database initialized", extra={"url_scheme": cls._url_scheme})

    @classmethod
    async def shutdown(cls) -> None:
        """Dispose the engine; safe to call when not initialized."""
        async with cls._lock():
            engine = cls._engine
            if engine is None:
                return
            cls._engine = None
            cls._sessions = None
            await engine.dispose()
            logger.info("Database shut down", extra={"url_scheme": cls._url_scheme})
            cls._url_scheme = None

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._engine is not None

    @classmethod
    def _require_engine(cls) -> AsyncEngine:
        if cls._engine is None:
            raise DatabaseNotInitializedError()
        return cls._engine

    @classmethod
    def _require_sessions(cls) -> async_sessionmaker[AsyncSession]:
        if cls._sessions is None:
            raise DatabaseNotInitializedError()
        return cls._sessions

    @classmethod
    async def create_all(cls) -> None:
        """Create missing SQLModel tables (``save_slots``)."""
        async with cls._require_engine().begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.debug("Database tables ensured", extra={"tables": sorted(SQLModel.metadata.tables)})

    @classmethod
    async def health_check(cls) -> bool:
        """True when the database answers ``SELECT 1``. Never raises."""
        if cls._engine is None:
            return False
        try:
            async with cls._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (OperationalError, DBAPIError) as exc:
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False
        return True

    # ========================================================================
    # Sessions
    # ========================================================================

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncGenerator[AsyncSession, None]:
        """Read session; nothing is committed."""
        sessions = cls._require_sessions()
        start = time.perf_counter()
        async with sessions() as session:
            yield session
        logger.debug("Database session closed", extra={"duration_ms": _elapsed_ms(start)})

    @classmethod
    @asynccontextmanager
    async def get_transaction(cls) -> AsyncGenerator[AsyncSession, None]:
        """
        Session committed on success and rolled back on any exception.

        Driver errors are re-raised as ``DatabaseError``; everything else
        propagates unchanged.
        """
        sessions = cls._require_sessions()
        start = time.perf_counter()
        async with sessions() as session:
            try:
                yield session
                await session.commit()
            except (OperationalError, DBAPIError) as exc:
                await session.rollback()
                logger.error(
                    "Database transaction rolled back",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "duration_ms": _elapsed_ms(start),
                    },
                )
                raise DatabaseError("transaction", exc) from exc
            except Exception:
                await session.rollback()
                raise
        logger.debug("Database transaction committed", extra={"duration_ms": _elapsed_ms(start)})
