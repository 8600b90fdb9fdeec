"""
Booking endpoints. All routes require a bearer token and only ever touch the
caller's own bookings.
"""
import uuid
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from .booking_engine import BookingChanges, BookingEngine, BookingView
from .booking_store import BookingStore
from .conflicts import room_locks
from .core.db import get_session
from .core.request_context import RequestContext, get_request_context

router = APIRouter()


def _check_date(value: str) -> str:
    datetime.strptime(value, "%Y-%m-%d")
    return value


def _check_time(value: str) -> str:
    datetime.strptime(value, "%H:%M")
    return value


MeetingDate = Annotated[
    str, Field(pattern=r"^\d{4}-\d{2}-\d{2}$", description="YYYY-MM-DD"), AfterValidator(_check_date)
]
TimeOfDay = Annotated[
    str, Field(pattern=r"^\d{2}:\d{2}$", description="HH:MM"), AfterValidator(_check_time)
]


# === Request Models ===

class CreateBookingRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    room: str = Field(..., min_length=1, max_length=120)
    meeting_date: MeetingDate
    start_time: TimeOfDay
    end_time: TimeOfDay
    description: str | None = None


class UpdateBookingRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    meeting_date: MeetingDate | None = None
    start_time: TimeOfDay | None = None
    end_time: TimeOfDay | None = None
    room: str | None = Field(None, min_length=1, max_length=120)
    description: str | None = None

    @model_validator(mode="after")
    def require_some_field(self) -> "UpdateBookingRequest":
        if self.to_changes().is_empty():
            raise ValueError("Provide at least one field to update.")
        return self

    def to_changes(self) -> BookingChanges:
        return BookingChanges(
            meeting_date=self.meeting_date,
            start_time=self.start_time,
            end_time=self.end_time,
            room=self.room,
            description=self.description,
        )


class MessageResponse(BaseModel):
    message: str


# === Dependencies ===

def get_booking_engine(session: AsyncSession = Depends(get_session)) -> BookingEngine:
    return BookingEngine(BookingStore(session), room_locks)


# === Endpoints ===

@router.post("", response_model=BookingView, status_code=201)
async def create_booking(
    request: CreateBookingRequest,
    ctx: RequestContext = Depends(get_request_context),
    engine: BookingEngine = Depends(get_booking_engine),
):
    """
    Book a room for one interval on one day.

    Error Codes:
    - 400: Missing fields, bad date/time format, end not after start
    - 409: Another ACTIVE booking of the room overlaps the interval
    """
    return await engine.create_booking(
        ctx.client_id,
        room=request.room,
        meeting_date=request.meeting_date,
        start_time=request.start_time,
        end_time=request.end_time,
        description=request.description,
    )


@router.get("", response_model=list[BookingView])
async def list_bookings(
    ctx: RequestContext = Depends(get_request_context),
    engine: BookingEngine = Depends(get_booking_engine),
):
    """Caller's bookings of any status, earliest start first."""
    return await engine.list_bookings(ctx.client_id)


@router.patch("/{booking_id}", response_model=BookingView)
async def update_booking(
    booking_id: uuid.UUID,
    request: UpdateBookingRequest,
    ctx: RequestContext = Depends(get_request_context),
    engine: BookingEngine = Depends(get_booking_engine),
):
    """
    Change any subset of meetingDate/startTime/endTime/room/description.

    Omitted fields keep their current value; the resulting interval is
    re-validated and re-checked for conflicts.
    """
    return await engine.update_booking(ctx.client_id, booking_id, request.to_changes())


@router.patch("/{booking_id}/cancel", response_model=MessageResponse)
async def cancel_booking(
    booking_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    engine: BookingEngine = Depends(get_booking_engine),
):
    await engine.cancel_booking(ctx.client_id, booking_id)
    return MessageResponse(message="Booking canceled.")
