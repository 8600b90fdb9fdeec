"""
Account registration and login.

These endpoints do NOT require a bearer token; they issue one.
"""
import logging
import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .core.db import get_session
from .core.errors import AuthenticationError, ConflictError
from .core.responses import ErrorCodes
from .models import Client
from .security import hash_password, issue_token, verify_password

logger = logging.getLogger(__name__)

router = APIRouter()

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


# === Request/Response Models ===

class RegisterRequest(BaseModel):
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(..., min_length=6, max_length=72)
    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty or whitespace")
        return v.strip()


class LoginRequest(BaseModel):
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)


class ClientView(BaseModel):
    """Account fields safe to return to the account owner."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: uuid.UUID
    email: str
    name: str | None = None
    role: str | None = None
    age: int | None = None
    availability: dict[str, list[str]] | None = None
    profile_photo: str | None = None


class AuthResponse(BaseModel):
    token: str
    client: ClientView


def normalize_email(email: str) -> str:
    return email.strip().lower()


# === Endpoints ===

@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(request: RegisterRequest, db: AsyncSession = Depends(get_session)):
    """
    Create an account and return a token for it.

    Error Codes:
    - 400: Invalid email, password shorter than 6 characters, empty name
    - 409: Email already in use
    """
    email = normalize_email(request.email)

    existing = await db.scalar(select(Client.id).where(Client.email == email))
    if existing is not None:
        raise ConflictError("Email already in use.", code=ErrorCodes.ALREADY_EXISTS)

    client = Client(email=email, password_hash=hash_password(request.password), name=request.name)
    db.add(client)
    try:
        await db.commit()
    except IntegrityError:
        # Concurrent registration won the unique index
        await db.rollback()
        raise ConflictError("Email already in use.", code=ErrorCodes.ALREADY_EXISTS)
    await db.refresh(client)

    logger.info(f"Client {client.id} registered")
    return AuthResponse(token=issue_token(str(client.id), client.email), client=ClientView.model_validate(client))


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest, db: AsyncSession = Depends(get_session)):
    """Exchange email + password for a token. Unknown email and wrong password look the same."""
    client = await db.scalar(select(Client).where(Client.email == normalize_email(request.email)))

    if client is None or not verify_password(request.password, client.password_hash):
        logger.warning("Login failed: invalid credentials")
        raise AuthenticationError("Invalid credentials.", code=ErrorCodes.INVALID_CREDENTIALS)

    return AuthResponse(token=issue_token(str(client.id), client.email), client=ClientView.model_validate(client))
