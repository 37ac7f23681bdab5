"""
Unit tests for the domain and infrastructure exception hierarchies.
"""

import pytest

from hairroot.core.exceptions import ConfigurationError, DatabaseError, ErrorSeverity
from hairroot.modules.shared.exceptions import (
    InsufficientResourcesError,
    InvalidActionError,
    MalformedSaveError,
    NotFoundError,
    get_error_severity,
    is_transient_error,
    should_alert,
)

pytestmark = pytest.mark.unit


class TestDomainExceptions:
    """Structured details on domain errors."""

    def test_insufficient_resources_details(self):
        exc = InsufficientResourcesError("coins", 90, 40)

        assert exc.details["deficit"] == 50
        assert exc.error_code == "INSUFFICIENT_COINS"
        assert "need 90" in str(exc)

    def test_to_dict_is_serializable(self):
        exc = InvalidActionError("fire-blast", "on_cooldown")

        data = exc.to_dict()

        assert data["error_type"] == "InvalidActionError"
        assert data["details"] == {"action": "fire-blast", "reason": "on_cooldown"}
        assert data["severity"] == ErrorSeverity.DEBUG.value

    def test_malformed_save_keeps_reason(self):
        exc = MalformedSaveError("coins must be numeric")

        assert exc.reason == "coins must be numeric"
        assert get_error_severity(exc) is ErrorSeverity.WARNING

    def test_not_found_is_not_transient(self):
        assert is_transient_error(NotFoundError("Creature", 999)) is False


class TestSeverityHelpers:
    """Alerting and log severity."""

    def test_unknown_exceptions_alert(self):
        assert should_alert(RuntimeError("x")) is True

    def test_domain_exceptions_do_not_alert(self):
        assert should_alert(InvalidActionError("a", "b")) is False

    def test_configuration_error_names_key(self):
        exc = ConfigurationError("rank.tiers", "no rank tiers configured")

        assert exc.config_key == "rank.tiers"
        assert exc.severity is ErrorSeverity.CRITICAL

    def test_helpers_cover_infrastructure_errors(self):
        exc = DatabaseError("save slot write", OSError("disk full"))

        assert is_transient_error(exc) is True
        assert should_alert(exc) is True
        assert exc.details["error_type"] == "OSError"
