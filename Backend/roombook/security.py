"""
Credential primitives: password hashing and bearer tokens.

Tokens are HS256 JWTs signed with the process-wide ``JWT_SECRET``. Each token
binds the client id (``sub``) and email and expires ``JWT_EXPIRES_HOURS``
after issuance (8 hours by default).

Usage:
    from roombook.security import issue_token, verify_token

    token = issue_token(client.id, client.email)
    claims = verify_token(token)
    claims.subject_id  # "2c9d..."
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext

from .core.config import get_settings
from .core.errors import AuthenticationError
from .core.responses import ErrorCodes

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class TokenClaims:
    subject_id: str
    email: str


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Unrecognized or corrupt hash in the store
        logger.warning("Stored password hash could not be parsed")
        return False


def issue_token(client_id: str, email: str, now: Optional[datetime] = None) -> str:
    settings = get_settings()
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(client_id),
        "email": email,
        "iat": issued_at,
        "exp": issued_at + timedelta(hours=settings.jwt_expires_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> TokenClaims:
    """
    Verify signature and expiry and return the bound identity.

    Raises:
        AuthenticationError: bad signature, expired, malformed, or missing claims
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired.", code=ErrorCodes.INVALID_TOKEN)
    except jwt.InvalidTokenError as e:
        logger.debug(f"JWT verification failed: {e}")
        raise AuthenticationError("Invalid or expired token.", code=ErrorCodes.INVALID_TOKEN)

    subject_id = payload.get("sub")
    email = payload.get("email")
    if not subject_id or not email:
        raise AuthenticationError("Invalid token: missing identity claims.", code=ErrorCodes.INVALID_TOKEN)

    return TokenClaims(subject_id=subject_id, email=email)
