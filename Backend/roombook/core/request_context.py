"""
Request Context Resolution Module

Single place where a request's identity is resolved. Every authenticated
route depends on ``get_request_context``.

AUTH METHOD:
    - ``Authorization: <scheme> <token>`` where token is a JWT issued by
      ``roombook.security.issue_token``
    - The scheme word is not inspected; the second segment must be present
    - Verification is stateless: no database lookup, no lock
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from .errors import AuthenticationError

logger = logging.getLogger(__name__)


@dataclass
class RequestContext:
    """Identity of the caller, attached to the request once the token checks out."""
    client_id: uuid.UUID
    email: str

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError("Authentication required. Token not provided.")

    parts = authorization.split(" ")
    token = parts[1] if len(parts) > 1 else ""
    if not token:
        raise AuthenticationError("Invalid Authorization header format. Expected: <scheme> <token>")
    return token


def resolve_request_context(request: Request) -> RequestContext:
    """
    Resolve the caller identity from the Authorization header.

    Raises:
        AuthenticationError: header missing, malformed, or token rejected
    """
    # Deferred import to avoid circular dependency
    from ..security import verify_token

    token = extract_bearer_token(request.headers.get("Authorization"))
    try:
        claims = verify_token(token)
    except AuthenticationError:
        logger.warning("Authentication failed: token rejected")
        raise

    try:
        client_id = uuid.UUID(claims.subject_id)
    except ValueError:
        logger.warning("Authentication failed: token subject is not a client id")
        raise AuthenticationError("Invalid token: unknown subject.")

    ctx = RequestContext(
        client_id=client_id,
        email=claims.email,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("User-Agent"),
    )
    request.state.context = ctx
    return ctx


async def get_request_context(request: Request) -> RequestContext:
    """
    FastAPI dependency for authenticated routes.

        @router.get("/bookings")
        async def handler(ctx: RequestContext = Depends(get_request_context)):
            ...
    """
    return resolve_request_context(request)
