"""Instantaneous fullness of the dining room"""

from datetime import datetime

from app.models.reservation import ReservationStatus
from app.repositories.reservations import ReservationRepository
from app.repositories.tables import TableRepository

COMMITTED_STATUSES = (ReservationStatus.CONFIRMED, ReservationStatus.ARRIVED)


class CapacityEstimator:
    """Committed seats divided by total active seats, in [0, 1].

    Committed seats are the guests of Confirmed/Arrived reservations whose
    window contains `now`, plus the capacity of occupied tables that none of
    those reservations already accounts for. Advisory only.
    """

    def __init__(self, tables: TableRepository, reservations: ReservationRepository):
        self.tables = tables
        self.reservations = reservations

    async def committed_seats(self, now: datetime) -> int:
        in_service = await self.reservations.in_service_at(now, COMMITTED_STATUSES)
        counted_tables = {table_id for reservation in in_service for table_id in reservation.table_ids}

        seats = sum(reservation.number_of_guests for reservation in in_service)
        seats += sum(
            table.capacity for table in await self.tables.occupied() if table.id not in counted_tables
        )
        return seats

    async def current_percent(self, now: datetime) -> float:
        total = await self.tables.total_capacity()
        if total <= 0:
            return 0.0
        return min(1.0, await self.committed_seats(now) / total)
