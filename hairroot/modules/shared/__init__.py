"""
Hair Root Shared Module

Purpose
-------
Domain-level foundations used by every game module:
- Domain exceptions and error helpers
- BaseService (logging, config access, event emission, validation)

Architecture
------------
- Domain layer only. Nothing here touches persistence or presentation.
"""

from hairroot.modules.shared.base_service import BaseService
from hairroot.modules.shared.exceptions import (
    HairRootDomainException,
    InsufficientResourcesError,
    InvalidActionError,
    InvalidEvolutionError,
    MalformedSaveError,
    NotFoundError,
    ValidationError,
    get_error_severity,
    is_transient_error,
    should_alert,
)

__all__ = [
    "BaseService",
    "HairRootDomainException",
    "InsufficientResourcesError",
    "InvalidActionError",
    "InvalidEvolutionError",
    "MalformedSaveError",
    "NotFoundError",
    "ValidationError",
    "get_error_severity",
    "is_transient_error",
    "should_alert",
]
