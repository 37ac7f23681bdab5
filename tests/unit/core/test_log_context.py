"""
Unit tests for the logging context helpers and formatters.
"""

import json
import logging

import pytest

from hairroot.core.logging.logger import (
    ContextFilter,
    JSONFormatter,
    LogContext,
    PlainFormatter,
    clear_log_context,
    get_log_context,
    get_logging_health,
    set_log_context,
)

pytestmark = pytest.mark.unit


def _record(msg="Round resolved", **extra):
    record = logging.LogRecord(
        "hairroot.modules.combat.engine", logging.INFO, __file__, 1, msg, None, None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogContext:
    """Scoped and task-wide context."""

    def setup_method(self):
        clear_log_context()

    def test_context_is_scoped(self):
        # Act
        with LogContext(battle_id="b-1", mode="royale"):
            inside = get_log_context()

        # Assert
        assert inside["battle_id"] == "b-1"
        assert inside["mode"] == "royale"
        assert "correlation_id" in inside
        assert get_log_context() == {}

    def test_nested_context_inherits_outer_values(self):
        with LogContext(player_id=7):
            with LogContext(operation="settle"):
                inner = get_log_context()

        assert inner["player_id"] == "7"
        assert inner["operation"] == "settle"

    async def test_async_context_manager(self):
        async with LogContext(component="state"):
            assert get_log_context()["component"] == "state"

    def test_set_and_clear(self):
        set_log_context(battle_id="b-2")
        assert get_log_context()["battle_id"] == "b-2"

        clear_log_context()
        assert get_log_context() == {}


class TestFormatting:
    """Record enrichment and rendering."""

    def setup_method(self):
        clear_log_context()

    def test_filter_copies_context_without_overriding_extra(self):
        # Arrange
        record = _record(battle_id="explicit")

        # Act
        with LogContext(battle_id="ambient", mode="duel"):
            ContextFilter().filter(record)

        # Assert
        assert record.battle_id == "explicit"
        assert record.mode == "duel"
        assert record.component == "engine"

    def test_json_payload(self):
        # Arrange
        record = _record(battle_id="b-9", mode="royale", placement=2)

        # Act
        payload = json.loads(JSONFormatter().format(record))

        # Assert
        assert payload["message"] == "Round resolved"
        assert payload["battle_id"] == "b-9"
        assert payload["extra"] == {"placement": 2}

    def test_plain_text_battle_tag(self):
        formatter = PlainFormatter(fmt="%(message)s%(battle_tag)s")

        tagged = formatter.format(_record(battle_id="b-3", mode="duel"))

        assert tagged == "Round resolved  [duel:b-3]"
        assert formatter.format(_record()) == "Round resolved"

    def test_health_reports_initialized(self):
        health = get_logging_health()

        assert health.initialized is True
        assert health.queue_max_size == 10_000
