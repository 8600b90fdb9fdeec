"""
Booking lifecycle engine.

    (none) --create--> ACTIVE --update--> ACTIVE --cancel--> CANCELED

CANCELED is terminal. Every check-then-write sequence (create, update) runs
while holding the room's in-process lock and inside one store transaction, so
the conflict check and the write that follows it are atomic with respect to
other bookings of the same room.

The engine raises ``ValidationError`` / ``ChronologyError`` / ``NotFoundError``
/ ``ConflictError``; translating them into HTTP responses is the caller's job.
"""

import logging
import uuid
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .booking_store import BookingRecord, BookingStore
from .conflicts import RoomLocks, has_conflict
from .core.errors import ChronologyError, ConflictError, NotFoundError, ValidationError
from .models import BookingStatus
from .timeslots import compose_timestamp, format_date, parse_date, parse_timestamp, time_of_day

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "A booking already exists for this room in that interval."


class BookingView(BaseModel):
    """Booking as returned to clients."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: uuid.UUID
    room: str
    meeting_date: str
    start_timestamp: str
    end_timestamp: str
    start_time: Optional[str]
    end_time: Optional[str]
    description: Optional[str]
    status: BookingStatus

    @classmethod
    def from_record(cls, record: BookingRecord) -> "BookingView":
        start_timestamp = record.start_timestamp
        end_timestamp = record.end_timestamp
        return cls(
            id=record.id,
            room=record.room,
            meeting_date=format_date(record.meeting_date),
            start_timestamp=start_timestamp,
            end_timestamp=end_timestamp,
            start_time=time_of_day(start_timestamp),
            end_time=time_of_day(end_timestamp),
            description=record.description,
            status=record.status,
        )


@dataclass
class BookingChanges:
    """Partial update. ``None`` means "not supplied"."""
    meeting_date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    room: Optional[str] = None
    description: Optional[str] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    @property
    def touches_schedule(self) -> bool:
        return any(v is not None for v in (self.meeting_date, self.start_time, self.end_time))


def ensure_chronology(start: datetime, end: datetime) -> None:
    if end <= start:
        raise ChronologyError()


class BookingEngine:
    def __init__(
        self,
        store: BookingStore,
        locks: Optional[RoomLocks] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.locks = locks if locks is not None else RoomLocks()
        self.clock = clock

    async def create_booking(
        self,
        owner_id: uuid.UUID,
        room: Optional[str],
        meeting_date: Optional[str],
        start_time: Optional[str],
        end_time: Optional[str],
        description: Optional[str] = None,
    ) -> BookingView:
        if not room or not meeting_date or not start_time or not end_time:
            raise ValidationError("room, meetingDate, startTime and endTime are required.")

        start = parse_timestamp(compose_timestamp(meeting_date, start_time))
        end = parse_timestamp(compose_timestamp(meeting_date, end_time))
        ensure_chronology(start, end)
        day = parse_date(meeting_date)

        async with self.locks.hold(room):
            async with self.store.transaction():
                await self.store.lock_room(room)
                if await has_conflict(self.store, room, day, start, end):
                    logger.warning(f"Booking rejected: room {room!r} busy on {meeting_date} {start_time}-{end_time}")
                    raise ConflictError(CONFLICT_MESSAGE)
                record = await self.store.insert(
                    client_id=owner_id,
                    room=room,
                    meeting_date=day,
                    start_time=start,
                    end_time=end,
                    description=description,
                )

        logger.info(f"Booking {record.id} created for client {owner_id} in room {room!r}")
        return BookingView.from_record(record)

    async def list_bookings(self, owner_id: uuid.UUID) -> list[BookingView]:
        records = await self.store.list_for_client(owner_id)
        return [BookingView.from_record(r) for r in records]

    async def update_booking(
        self,
        owner_id: uuid.UUID,
        booking_id: uuid.UUID,
        changes: BookingChanges,
    ) -> BookingView:
        if changes.is_empty():
            raise ValidationError("Provide at least one field to update.")

        # Read outside the lock only to pick which room to lock; re-checked below
        target_room = changes.room or (await self._require_active(owner_id, booking_id)).room

        while True:
            async with self.locks.hold(target_room):
                async with self.store.transaction():
                    await self.store.lock_room(target_room)
                    current = await self._require_active(owner_id, booking_id)
                    if changes.room is not None or current.room == target_room:
                        return await self._apply_changes(current, changes)
            # Moved to another room while we waited; lock that room instead
            logger.info(f"Booking {booking_id} moved to room {current.room!r} during update, retrying")
            target_room = current.room

    async def _apply_changes(self, current: BookingRecord, changes: BookingChanges) -> BookingView:
        """Re-validate and write ``changes``. Caller holds the lock of the resulting room."""
        next_date = changes.meeting_date or format_date(current.meeting_date)
        next_start_time = changes.start_time or time_of_day(current.start_timestamp)
        next_end_time = changes.end_time or time_of_day(current.end_timestamp)
        start = parse_timestamp(compose_timestamp(next_date, next_start_time))
        end = parse_timestamp(compose_timestamp(next_date, next_end_time))
        ensure_chronology(start, end)
        day = parse_date(next_date)
        next_room = changes.room or current.room

        if await has_conflict(self.store, next_room, day, start, end, exclude_booking_id=current.id):
            logger.warning(f"Update of booking {current.id} rejected: room {next_room!r} busy")
            raise ConflictError(CONFLICT_MESSAGE)

        column_changes: dict = {}
        if changes.touches_schedule:
            if day != current.meeting_date:
                column_changes["meeting_date"] = day
            # start and end are always written as a pair
            if start != current.start_time or end != current.end_time:
                column_changes["start_time"] = start
                column_changes["end_time"] = end
        if changes.room is not None and changes.room != current.room:
            column_changes["room"] = changes.room
        if changes.description is not None and changes.description != current.description:
            column_changes["description"] = changes.description

        if not column_changes:
            return BookingView.from_record(current)

        record = await self.store.update_fields(current.id, column_changes)
        logger.info(f"Booking {current.id} updated: {sorted(column_changes)}")
        return BookingView.from_record(record)

    async def cancel_booking(self, owner_id: uuid.UUID, booking_id: uuid.UUID) -> None:
        async with self.store.transaction():
            affected = await self.store.cancel(booking_id, owner_id)

        if affected == 0:
            raise NotFoundError("Booking not found or already canceled.")
        logger.info(f"Booking {booking_id} canceled by client {owner_id}")

    async def release_expired(self, now: Optional[datetime] = None) -> int:
        cutoff = now or self.clock()
        async with self.store.transaction():
            released = await self.store.release_expired(cutoff)
        logger.info(f"Released {released} expired booking(s) ending at or before {cutoff:%Y-%m-%dT%H:%M}")
        return released

    async def _require_active(self, owner_id: uuid.UUID, booking_id: uuid.UUID) -> BookingRecord:
        # Ownership and existence are checked together: someone else's booking looks absent
        record = await self.store.get_owned(booking_id, owner_id)
        if record is None or not record.is_active:
            raise NotFoundError("Booking not found.")
        return record
