"""
Domain error taxonomy.

Handlers and the booking engine raise these; the exception handlers registered
in ``roombook.main`` turn them into HTTP responses. Nothing below the HTTP
layer should raise ``HTTPException`` directly.
"""
from typing import Any, Optional

from .responses import ErrorCodes


class ApiError(Exception):
    """Base class for errors that map onto a fixed HTTP status."""

    status_code: int = 500
    code: str = ErrorCodes.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        code: Optional[str] = None,
    ):
        self.message = message
        self.details = details
        if code:
            self.code = code
        super().__init__(message)


class ValidationError(ApiError):
    """Malformed or missing input."""
    status_code = 400
    code = ErrorCodes.VALIDATION_ERROR


class ChronologyError(ValidationError):
    """End instant is not strictly after the start instant."""
    code = ErrorCodes.INVALID_TIME_RANGE

    def __init__(self, message: str = "End time must be after start time."):
        super().__init__(message)


class AuthenticationError(ApiError):
    """Missing, malformed, invalid or expired credential."""
    status_code = 401
    code = ErrorCodes.AUTHENTICATION_REQUIRED


class NotFoundError(ApiError):
    """Resource is absent or not owned by the caller (the two are not distinguished)."""
    status_code = 404
    code = ErrorCodes.NOT_FOUND


class ConflictError(ApiError):
    status_code = 409
    code = ErrorCodes.CONFLICT


class InternalError(ApiError):
    status_code = 500
    code = ErrorCodes.INTERNAL_ERROR
