"""
Exception foundations for the Hair Root engine.

Purpose
-------
One base class, ``HairRootError``, carries the structured fields every error
in the engine reports (message, details, severity, retryability and a stable
code). Two hierarchies hang off it:

- ``HairRootInfrastructureException`` (this module): broken balance
  configuration, persistence failures, database lifecycle misuse
- ``HairRootDomainException`` (``hairroot.modules.shared.exceptions``):
  game rule violations

The helpers at the bottom work for both.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"  # Expected, e.g. a rejected battle action
    INFO = "info"  # Normal play, e.g. not enough coins
    WARNING = "warning"  # Handled, e.g. corrupt save fallback
    ERROR = "error"
    CRITICAL = "critical"  # Broken configuration or data integrity


class HairRootError(Exception):
    """
    Base for every engine error.

    Subclasses set ``DEFAULT_SEVERITY`` / ``DEFAULT_RETRYABLE``; callers may
    override both per instance.
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})
        self.severity = severity or self.DEFAULT_SEVERITY
        self.is_retryable = self.DEFAULT_RETRYABLE if is_retryable is None else is_retryable
        self.error_code = error_code or type(self).__name__
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Structured form for ``extra=`` logging."""
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        if not self.details:
            return f"[{self.error_code}] {self.message}"
        return f"[{self.error_code}] {self.message} | Details: {self.details}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"details={self.details!r}, severity={self.severity.value!r})"
        )


# ============================================================================
# Infrastructure errors
# ============================================================================


class HairRootInfrastructureException(HairRootError):
    """Engineering-level failure outside the game rules."""


class ConfigurationError(HairRootInfrastructureException):
    """
    A balance table or setting is missing or invalid.

    Args:
        config_key: Dot-notation key of the offending setting
        message: What is wrong with it
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIG_ERROR",
        )


class DatabaseError(HairRootInfrastructureException):
    """A save slot read or write failed; the caller may retry."""

    DEFAULT_RETRYABLE = True

    def __init__(self, operation: str, original_error: Exception) -> None:
        self.operation = operation
        self.original_error = original_error
        super().__init__(
            f"Database error during {operation}: {original_error}",
            details={
                "operation": operation,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="DATABASE_ERROR",
        )


class DatabaseNotInitializedError(HairRootInfrastructureException):
    """A session was requested before ``DatabaseService.initialize()``."""

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self) -> None:
        super().__init__(
            "DatabaseService not initialized. Call initialize() first.",
            error_code="DATABASE_NOT_INITIALIZED",
        )


class DatabaseInitializationError(HairRootInfrastructureException):
    """The engine could not be created (bad URL, missing driver)."""

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, message: str) -> None:
        super().__init__(message, error_code="DATABASE_INIT_FAILED")


# ============================================================================
# Helpers
# ============================================================================


def is_transient_error(exc: Exception) -> bool:
    return isinstance(exc, HairRootError) and exc.is_retryable


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """Severity for logging; foreign exceptions count as ERROR."""
    if isinstance(exc, HairRootError):
        return exc.severity
    return ErrorSeverity.ERROR


def should_alert(exc: Exception) -> bool:
    return get_error_severity(exc) in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
