"""
Caller's own profile: name, role, age, weekly availability and photo.
"""
import logging
import uuid
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from .accounts import ClientView
from .core.db import get_session
from .core.errors import NotFoundError, ValidationError
from .core.request_context import RequestContext, get_request_context
from .models import Client

logger = logging.getLogger(__name__)

router = APIRouter()


class UpdateProfileRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str | None = None
    role: str | None = None
    age: int | None = None
    # validated by is_valid_availability so a bad shape is a 400 with a clear message
    availability: Any = None
    profile_photo: str | None = None


def is_valid_availability(payload: Any) -> bool:
    """A mapping of weekday name to a list of slot strings."""
    if not isinstance(payload, dict):
        return False
    return all(
        isinstance(slots, list) and all(isinstance(slot, str) for slot in slots)
        for slots in payload.values()
    )


async def fetch_client(db: AsyncSession, client_id: uuid.UUID) -> Client:
    client = await db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Profile not found.")
    return client


@router.get("/me", response_model=ClientView)
async def get_profile(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    return ClientView.model_validate(await fetch_client(db, ctx.client_id))


@router.put("/me", response_model=ClientView)
async def update_profile(
    request: UpdateProfileRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    """
    Update any of name/role/age/availability/profilePhoto.

    Empty strings are ignored; at least one field must end up applied.
    """
    updates: dict = {}
    if request.name:
        updates["name"] = request.name
    if request.role:
        updates["role"] = request.role
    if request.age is not None:
        updates["age"] = request.age
    if request.availability is not None:
        if not is_valid_availability(request.availability):
            raise ValidationError("Availability must be an object mapping weekdays to lists of slots.")
        updates["availability"] = request.availability
    if request.profile_photo:
        updates["profile_photo"] = request.profile_photo

    if not updates:
        raise ValidationError("No fields to update.")

    client = await fetch_client(db, ctx.client_id)
    for column, value in updates.items():
        setattr(client, column, value)
    await db.commit()
    await db.refresh(client)

    logger.info(f"Profile of client {client.id} updated: {sorted(updates)}")
    return ClientView.model_validate(client)
