"""
Booking persistence.

``BookingStore`` wraps one ``AsyncSession`` (one acquired connection) and is
the only code that touches the ``bookings`` table. ORM rows are converted to
``BookingRecord`` here; the lifecycle engine works on records only.

Usage:
    store = BookingStore(session)
    async with store.transaction():
        await store.lock_room(room)
        if await store.count_active_overlaps(room, day, start, end) == 0:
            await store.insert(...)
"""

import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import AsyncIterator, Optional

from sqlalchemy import func, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Booking, BookingStatus
from .timeslots import format_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingRecord:
    id: uuid.UUID
    client_id: uuid.UUID
    room: str
    meeting_date: date
    start_time: datetime
    end_time: datetime
    description: Optional[str]
    status: BookingStatus

    @classmethod
    def from_row(cls, row: Booking) -> "BookingRecord":
        return cls(
            id=row.id,
            client_id=row.client_id,
            room=row.room,
            meeting_date=row.meeting_date,
            start_time=row.start_time,
            end_time=row.end_time,
            description=row.description,
            status=BookingStatus(row.status),
        )

    @property
    def start_timestamp(self) -> str:
        return format_timestamp(self.start_time)

    @property
    def end_timestamp(self) -> str:
        return format_timestamp(self.end_time)

    @property
    def is_active(self) -> bool:
        return self.status == BookingStatus.ACTIVE


class BookingStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["BookingStore"]:
        """Commit on clean exit, roll back on any exception."""
        try:
            yield self
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def lock_room(self, room: str) -> None:
        """
        Serialize check-then-write for ``room`` across processes.

        On PostgreSQL this takes a transaction-scoped advisory lock released at
        commit/rollback. Other backends rely on the in-process room locks.
        """
        if self.session.get_bind().dialect.name == "postgresql":
            await self.session.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:room))"), {"room": room}
            )

    async def count_active_overlaps(
        self,
        room: str,
        meeting_date: date,
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: Optional[uuid.UUID] = None,
    ) -> int:
        stmt = select(func.count()).select_from(Booking).where(
            Booking.room == room,
            Booking.status == BookingStatus.ACTIVE,
            Booking.meeting_date == meeting_date,
            Booking.start_time < end_time,
            Booking.end_time > start_time,
        )
        if exclude_booking_id is not None:
            stmt = stmt.where(Booking.id != exclude_booking_id)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def insert(
        self,
        *,
        client_id: uuid.UUID,
        room: str,
        meeting_date: date,
        start_time: datetime,
        end_time: datetime,
        description: Optional[str],
    ) -> BookingRecord:
        booking = Booking(
            client_id=client_id,
            room=room,
            meeting_date=meeting_date,
            start_time=start_time,
            end_time=end_time,
            description=description,
            status=BookingStatus.ACTIVE,
        )
        self.session.add(booking)
        await self.session.flush()
        return BookingRecord.from_row(booking)

    async def get_owned(self, booking_id: uuid.UUID, client_id: uuid.UUID) -> Optional[BookingRecord]:
        # populate_existing: a re-read under the room lock must not reuse the identity-map copy
        result = await self.session.execute(
            select(Booking)
            .where(Booking.id == booking_id, Booking.client_id == client_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return BookingRecord.from_row(row) if row else None

    async def list_for_client(self, client_id: uuid.UUID) -> list[BookingRecord]:
        result = await self.session.execute(
            select(Booking)
            .where(Booking.client_id == client_id)
            .order_by(Booking.start_time, Booking.created_at)
        )
        return [BookingRecord.from_row(row) for row in result.scalars().all()]

    async def update_fields(self, booking_id: uuid.UUID, changes: dict) -> BookingRecord:
        """Apply column changes to one booking. ``changes`` keys are Booking attribute names."""
        booking = await self.session.get(Booking, booking_id)
        if booking is None:
            raise LookupError(f"Booking {booking_id} disappeared during update")
        for column, value in changes.items():
            setattr(booking, column, value)
        await self.session.flush()
        return BookingRecord.from_row(booking)

    async def cancel(self, booking_id: uuid.UUID, client_id: uuid.UUID) -> int:
        """Conditional ACTIVE -> CANCELED transition. Returns the affected row count (0 or 1)."""
        result = await self.session.execute(
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.client_id == client_id,
                Booking.status == BookingStatus.ACTIVE,
            )
            .values(status=BookingStatus.CANCELED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def release_expired(self, now: datetime) -> int:
        """Cancel every ACTIVE booking whose end time is not after ``now``."""
        result = await self.session.execute(
            update(Booking)
            .where(Booking.status == BookingStatus.ACTIVE, Booking.end_time <= now)
            .values(status=BookingStatus.CANCELED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
