"""
Maintenance jobs exposed over HTTP so an external scheduler can trigger them.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from .booking_engine import BookingEngine
from .bookings import get_booking_engine
from .core.request_context import RequestContext, get_request_context

router = APIRouter()


class ReleaseExpiredResponse(BaseModel):
    message: str
    released: int


@router.post("/release-expired", response_model=ReleaseExpiredResponse)
async def release_expired_bookings(
    ctx: RequestContext = Depends(get_request_context),
    engine: BookingEngine = Depends(get_booking_engine),
):
    """Cancel every ACTIVE booking that has already ended."""
    released = await engine.release_expired()
    return ReleaseExpiredResponse(message="Expired bookings released.", released=released)
