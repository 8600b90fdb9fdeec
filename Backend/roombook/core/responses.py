"""
Standardized Error Response Module

Successful endpoints return their resource directly (a booking view, a list
of bookings, a profile). Every failure goes through the exception handlers in
``roombook.main`` and is rendered with ``error_response``:

    {
        "error": {
            "code": "ERROR_CODE",
            "message": "Human-readable message",
            "details": {...}  # Optional extra context
        },
        "status": "error"
    }

ERROR CODES:
    - VALIDATION_ERROR: Request data failed validation
    - INVALID_TIME_RANGE: End time is not after start time
    - AUTHENTICATION_REQUIRED: No valid bearer credential provided
    - NOT_FOUND: Resource absent or not owned by the caller
    - CONFLICT: Overlapping booking or duplicate email
    - INTERNAL_ERROR: Server-side error
"""

from typing import Any, Optional


class ErrorCodes:
    """Standard error codes for API responses."""

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_TIME_RANGE = "INVALID_TIME_RANGE"

    # Authentication errors (401)
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"

    # Not found errors (404)
    NOT_FOUND = "NOT_FOUND"

    # Conflict errors (409)
    CONFLICT = "CONFLICT"
    ALREADY_EXISTS = "ALREADY_EXISTS"

    # Server errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


def error_response(
    code: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
) -> dict:
    """Create a standardized error response dict."""
    response = {
        "error": {
            "code": code,
            "message": message,
        },
        "status": "error",
    }
    if details:
        response["error"]["details"] = details
    return response
