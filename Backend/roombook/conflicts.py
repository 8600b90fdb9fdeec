import asyncio
import logging
import uuid
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncIterator, Optional, Protocol

logger = logging.getLogger(__name__)


class OverlapCounter(Protocol):
    async def count_active_overlaps(
        self,
        room: str,
        meeting_date: date,
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: Optional[uuid.UUID] = None,
    ) -> int: ...


def intervals_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open [start, end) intersection; touching intervals do not overlap."""
    return start_a < end_b and start_b < end_a


async def has_conflict(
    store: OverlapCounter,
    room: str,
    meeting_date: date,
    start_time: datetime,
    end_time: datetime,
    exclude_booking_id: Optional[uuid.UUID] = None,
) -> bool:
    """
    True if an ACTIVE booking of ``room`` on ``meeting_date`` intersects [start_time, end_time).

    Must run on the same store (session/transaction) as the write that follows it.
    """
    total = await store.count_active_overlaps(
        room, meeting_date, start_time, end_time, exclude_booking_id
    )
    if total:
        logger.info(
            f"Room {room!r} has {total} active booking(s) overlapping "
            f"{start_time:%Y-%m-%dT%H:%M}-{end_time:%H:%M}"
        )
    return total > 0


class RoomLocks:
    """
    Per-room asyncio locks serializing check-then-write inside one process.

    A room's lock exists only while someone holds or waits for it.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, room: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(room, asyncio.Lock())
        self._holders[room] += 1
        try:
            async with lock:
                yield
        finally:
            self._holders[room] -= 1
            if self._holders[room] == 0:
                del self._holders[room]
                self._locks.pop(room, None)

    def __len__(self) -> int:
        return len(self._locks)


room_locks = RoomLocks()
