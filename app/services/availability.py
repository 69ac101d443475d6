"""Table availability over reservation windows"""

from datetime import datetime, timedelta
from typing import Iterable, Optional, Set, Tuple

from app.config import settings
from app.repositories.reservations import ReservationRepository


def service_window(start: datetime, duration_minutes: Optional[int] = None) -> Tuple[datetime, datetime]:
    """The half-open interval a party holds its tables"""
    minutes = settings.service_duration_minutes if duration_minutes is None else duration_minutes
    return start, start + timedelta(minutes=minutes)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """[a_start, a_end) and [b_start, b_end) share at least one instant"""
    return a_start < b_end and b_start < a_end


class AvailabilityIndex:
    """Answers which tables are free for a window, given active assignments.

    Only reservations in a blocking status (Pending, Confirmed, Arrived) hold
    a table. Callers that act on the answer must hold the tables' locks.
    """

    def __init__(self, reservations: ReservationRepository, duration_minutes: Optional[int] = None):
        self.reservations = reservations
        self.duration_minutes = (
            settings.service_duration_minutes if duration_minutes is None else duration_minutes
        )

    async def blocked(
        self,
        table_ids: Iterable[int],
        start: datetime,
        duration_minutes: Optional[int] = None,
        exclude_reservation_id: Optional[int] = None,
    ) -> Set[int]:
        ids = set(table_ids)
        window_start, window_end = service_window(start, duration_minutes or self.duration_minutes)
        rows = await self.reservations.blocking_assignments(ids, window_start, window_end)

        blocked = set()
        for table_id, reservation_id, held_from, held_minutes in rows:
            if reservation_id == exclude_reservation_id:
                continue
            held_start, held_end = service_window(held_from, held_minutes)
            if overlaps(window_start, window_end, held_start, held_end):
                blocked.add(table_id)
        return blocked

    async def find_free(
        self,
        table_ids: Iterable[int],
        start: datetime,
        duration_minutes: Optional[int] = None,
    ) -> Set[int]:
        ids = set(table_ids)
        return ids - await self.blocked(ids, start, duration_minutes)

    async def is_available(
        self,
        table_id: int,
        start: datetime,
        duration_minutes: Optional[int] = None,
    ) -> bool:
        return table_id in await self.find_free([table_id], start, duration_minutes)
