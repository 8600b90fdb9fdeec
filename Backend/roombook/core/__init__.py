"""
Core module - configuration, database, request context, errors and response formatting.
"""
from .config import get_settings
from .db import Base, dispose_engine, get_engine, get_session, get_session_factory
from .errors import (
    ApiError,
    AuthenticationError,
    ChronologyError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from .request_context import RequestContext, get_request_context, resolve_request_context
from .responses import ErrorCodes, error_response

__all__ = [
    # Config
    "get_settings",
    # Database
    "Base",
    "get_engine",
    "get_session",
    "get_session_factory",
    "dispose_engine",
    # Errors
    "ApiError",
    "ValidationError",
    "ChronologyError",
    "AuthenticationError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
    # Request Context
    "RequestContext",
    "resolve_request_context",
    "get_request_context",
    # Responses
    "ErrorCodes",
    "error_response",
]
