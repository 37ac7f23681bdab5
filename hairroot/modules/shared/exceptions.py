"""
Domain exceptions for the Hair Root engine.

Purpose
-------
Structured exception hierarchy for game rule violations: not enough coins,
unknown creatures, illegal evolutions, rejected battle actions and corrupt
save data.

Usage Notes
-----------
The public gameplay API reports normal failures as results (``None``, an
empty list, a rejected ``ActionResult``). These exceptions are raised by the
``require_*`` helpers for callers that prefer exceptions, and internally at
validation boundaries such as save import.

Design Notes
------------
- All domain exceptions inherit from `HairRootDomainException`, which shares
  the `HairRootError` base with the infrastructure errors.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from hairroot.core.exceptions import (
    ErrorSeverity,
    HairRootError,
    get_error_severity,
    is_transient_error,
    should_alert,
)


class HairRootDomainException(HairRootError):
    """Base for game rule violations; INFO severity unless a subclass says otherwise."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO


class InsufficientResourcesError(HairRootDomainException):
    """
    Raised when the player lacks coins (or copies) for an action.

    Args:
        resource: Name of the resource type (e.g., "coins", "copies")
        required: Amount required for the action
        current: Amount the player currently has
    """

    def __init__(self, resource: str, required: int, current: int) -> None:
        self.resource = resource
        self.required = required
        self.current = current
        super().__init__(
            f"Insufficient {resource}: need {required:,}, have {current:,}",
            details={
                "resource": resource,
                "required": required,
                "current": current,
                "deficit": required - current,
            },
            error_code=f"INSUFFICIENT_{resource.upper()}",
        )


class NotFoundError(HairRootDomainException):
    """
    Raised when a requested entity does not exist.

    Args:
        resource_type: Type of resource (e.g., "Creature", "Participant")
        identifier: Optional identifier for the missing resource
    """

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier
        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"
        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class ValidationError(HairRootDomainException):
    """
    Raised when input fails domain validation.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )




class InvalidEvolutionError(HairRootDomainException):
    """Raised when an evolution request fails a rule (no target, too few copies)."""

    def __init__(self, reason: str, creature_id: Optional[int] = None) -> None:
        self.reason = reason
        self.creature_id = creature_id
        super().__init__(
            f"Evolution failed: {reason}",
            details={"reason": reason, "creature_id": creature_id},
            error_code="EVOLUTION_FAILED",
        )


class InvalidActionError(HairRootDomainException):
    """
    Raised when a battle action is not permitted.

    Args:
        action: Skill id or action name
        reason: Rejection reason code (e.g. ``"on_cooldown"``)
    """

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(
            f"Action '{action}' rejected: {reason}",
            details={"action": action, "reason": reason},
            error_code="ACTION_REJECTED",
        )


class MalformedSaveError(HairRootDomainException):
    """Raised when persisted or imported save data fails structural validation."""

    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(
            f"Malformed save data: {reason}",
            details={"reason": reason},
            error_code="MALFORMED_SAVE",
        )


__all__ = [
    "HairRootDomainException",
    "InsufficientResourcesError",
    "NotFoundError",
    "ValidationError",
    "InvalidEvolutionError",
    "InvalidActionError",
    "MalformedSaveError",
    "get_error_severity",
    "is_transient_error",
    "should_alert",
]
