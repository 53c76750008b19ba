"""
Domain Errors

Services raise these instead of HTTPException so they can be reused
outside a request (Celery tasks, scripts). The API layer maps each one
to its ``status_code`` in a single exception handler.
"""

from typing import Optional


class TableServeError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(self, detail: str, *, status_code: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        """Convert to the standard error response body."""
        return {
            "success": False,
            "error": self.error,
            "detail": self.detail,
        }


class ValidationFailedError(TableServeError):
    status_code = 400
    error = "Bad Request"


class AuthenticationError(TableServeError):
    status_code = 401
    error = "Unauthorized"


class QuotaExceededError(TableServeError):
    """Raised when a subscription limit blocks the operation."""
    status_code = 402
    error = "Payment Required"


class PermissionDeniedError(TableServeError):
    status_code = 403
    error = "Forbidden"


class NotFoundError(TableServeError):
    status_code = 404
    error = "Not Found"


class ConflictError(TableServeError):
    status_code = 409
    error = "Conflict"
