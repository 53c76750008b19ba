"""
Core module initialization.
Exports configuration and domain errors.
"""

from tableserve.core.config import get_settings, Settings, EnvironmentMode
from tableserve.core.exceptions import (
    TableServeError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
    ConflictError,
    QuotaExceededError,
    AuthenticationError,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "TableServeError",
    "NotFoundError",
    "PermissionDeniedError",
    "ValidationFailedError",
    "ConflictError",
    "QuotaExceededError",
    "AuthenticationError",
]
