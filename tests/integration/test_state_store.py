"""
Integration Tests for the SQL Save Slot Store
=============================================

Test Coverage
-------------
- Save and load through DatabaseService sessions
- Missing slots and slot isolation
- GameStateService persistence round trip
- Operations before initialization

Testing Strategy
----------------
- Real SQLAlchemy engine on in-memory aiosqlite (StaticPool)
- Tables created per test with ``DatabaseService.create_all()``
- Engine disposed after each test
"""

import pytest
from sqlalchemy.pool import NullPool, StaticPool

from hairroot.core.database.service import DatabaseService, engine_options
from hairroot.core.exceptions import DatabaseInitializationError, DatabaseNotInitializedError
from hairroot.modules.state.service import GameStateService
from hairroot.modules.state.store import SqlStateStore, StateStore
from hairroot.modules.state.tables import SaveSlot

MEMORY_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def database():
    """Initialized database with the save_slots table."""
    await DatabaseService.initialize(MEMORY_URL)
    await DatabaseService.create_all()
    yield DatabaseService
    await DatabaseService.shutdown()


# ============================================================================
# STORE TESTS
# ============================================================================


@pytest.mark.integration
class TestSqlStateStore:
    """Test the save slot store against a real database."""

    async def test_missing_slot(self, database):
        """Test that an empty slot loads as None."""
        store = SqlStateStore("empty")

        assert await store.load_state() is None

    async def test_save_then_load(self, database):
        """Test writing and reading a record."""
        # Arrange
        store = SqlStateStore("slot-a")
        payload = {"coins": 250, "collection": [], "playerName": "毛根マスター"}

        # Act
        await store.save_state(payload)
        loaded = await store.load_state()

        # Assert
        assert loaded == payload

    async def test_overwrite(self, database):
        """Test that saving again replaces the slot."""
        # Arrange
        store = SqlStateStore("slot-b")
        await store.save_state({"coins": 1})

        # Act
        await store.save_state({"coins": 2})

        # Assert
        assert await store.load_state() == {"coins": 2}

    async def test_slots_are_isolated(self, database):
        """Test that slots do not share rows."""
        await SqlStateStore("one").save_state({"coins": 1})
        await SqlStateStore("two").save_state({"coins": 2})

        assert await SqlStateStore("one").load_state() == {"coins": 1}

    def test_satisfies_protocol(self):
        """Test the StateStore protocol check."""
        assert isinstance(SqlStateStore("x"), StateStore)

    async def test_requires_initialization(self):
        """Test the error raised before the database is ready."""
        await DatabaseService.shutdown()

        with pytest.raises(DatabaseNotInitializedError):
            await SqlStateStore("x").load_state()

    async def test_health_check(self, database):
        """Test the SELECT 1 probe on a live engine."""
        assert await database.health_check() is True

    async def test_bad_url_fails_initialization(self):
        """Test that an unusable URL raises a typed error."""
        await DatabaseService.shutdown()

        with pytest.raises(DatabaseInitializationError):
            await DatabaseService.initialize("not-a-database-url")

        assert DatabaseService.is_initialized() is False



@pytest.mark.integration
class TestTransactions:
    """Commit and rollback through DatabaseService.get_transaction."""

    async def test_exception_rolls_back_the_write(self, database):
        """Test that a failing block leaves no row behind."""
        # Act
        with pytest.raises(ValueError):
            async with database.get_transaction() as session:
                session.add(SaveSlot(slot_id="broken", payload={"coins": 1}))
                await session.flush()
                raise ValueError("abort")

        # Assert
        assert await SqlStateStore("broken").load_state() is None


@pytest.mark.unit
class TestEngineOptions:
    """Engine keyword arguments chosen from the URL."""

    def test_memory_sqlite_shares_one_connection(self):
        options = engine_options(MEMORY_URL)

        assert options["poolclass"] is StaticPool
        assert options["connect_args"] == {"check_same_thread": False}

    def test_file_database_under_tests_uses_null_pool(self):
        options = engine_options("sqlite+aiosqlite:///./slot.db")

        assert options["poolclass"] is NullPool
        assert "connect_args" not in options


# ============================================================================
# SERVICE ROUND TRIP
# ============================================================================


@pytest.mark.integration
class TestStatePersistence:
    """Test GameStateService against the SQL store."""

    async def test_round_trip(self, database, catalog, progression, ranks, config, mock_event_bus):
        """Test that a saved game loads back into a fresh service."""
        # Arrange
        store = SqlStateStore("round-trip")
        first = GameStateService(catalog, progression, ranks, config, mock_event_bus, store=store)
        first.add_creature(catalog.require(1), count=3)
        first.select_creature(1)
        first.add_coins(400)
        await first.save()

        # Act
        second = GameStateService(catalog, progression, ranks, config, mock_event_bus, store=store)
        loaded = await second.load()

        # Assert
        assert loaded.coins == 500
        assert loaded.selected_creature_id == 1
        assert loaded.find(1).count == 3
        assert loaded.find(1).definition is catalog.require(1)

    async def test_empty_store_starts_fresh(
        self, database, catalog, progression, ranks, config, mock_event_bus
    ):
        """Test loading when nothing was saved."""
        store = SqlStateStore("fresh")
        service = GameStateService(catalog, progression, ranks, config, mock_event_bus, store=store)

        loaded = await service.load()

        assert loaded.coins == 100
        assert loaded.collection == []
