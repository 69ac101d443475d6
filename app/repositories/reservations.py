"""Reservation queries"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.reservation import (
    Reservation,
    ReservationTable,
    ReservationStatus,
    BLOCKING_STATUSES,
)

# No reservation window is longer than this; used to bound window scans
MAX_WINDOW = timedelta(days=1)


class ReservationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, reservation_id: int, for_update: bool = False) -> Optional[Reservation]:
        query = select(Reservation).where(Reservation.id == reservation_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_number(self, reservation_number: str) -> Optional[Reservation]:
        result = await self.db.execute(
            select(Reservation).where(Reservation.reservation_number == reservation_number)
        )
        return result.scalar_one_or_none()

    async def number_exists(self, reservation_number: str) -> bool:
        result = await self.db.execute(
            select(func.count(Reservation.id)).where(
                Reservation.reservation_number == reservation_number
            )
        )
        return bool(result.scalar())

    def add(self, reservation: Reservation) -> Reservation:
        self.db.add(reservation)
        return reservation

    async def blocking_assignments(
        self,
        table_ids: Iterable[int],
        start: datetime,
        end: datetime,
    ) -> List[Tuple[int, int, datetime, int]]:
        """Assignments on `table_ids` that may overlap [start, end).

        Returns (table_id, reservation_id, reservation_time, duration_minutes)
        rows; callers apply the exact overlap test per row.
        """
        ids = list(set(table_ids))
        if not ids:
            return []
        result = await self.db.execute(
            select(
                ReservationTable.table_id,
                Reservation.id,
                Reservation.reservation_time,
                Reservation.duration_minutes,
            )
            .join(Reservation, Reservation.id == ReservationTable.reservation_id)
            .where(
                ReservationTable.table_id.in_(ids),
                Reservation.status.in_(BLOCKING_STATUSES),
                Reservation.reservation_time < end,
                Reservation.reservation_time > start - MAX_WINDOW,
            )
        )
        return [tuple(row) for row in result.all()]

    async def by_phone(self, phone: str) -> List[Reservation]:
        result = await self.db.execute(
            select(Reservation)
            .where(Reservation.customer_phone == phone)
            .order_by(Reservation.reservation_time.desc())
        )
        return list(result.scalars().all())

    async def between(
        self,
        start: datetime,
        end: datetime,
        statuses: Optional[Sequence[ReservationStatus]] = None,
    ) -> List[Reservation]:
        """Reservations whose start time falls in [start, end)"""
        query = select(Reservation).where(
            Reservation.reservation_time >= start,
            Reservation.reservation_time < end,
        )
        if statuses:
            query = query.where(Reservation.status.in_(statuses))
        result = await self.db.execute(query.order_by(Reservation.reservation_time, Reservation.id))
        return list(result.scalars().all())

    async def overlapping(
        self,
        start: datetime,
        end: datetime,
        statuses: Sequence[ReservationStatus] = BLOCKING_STATUSES,
    ) -> List[Reservation]:
        """Reservations whose window intersects [start, end)"""
        candidates = await self.between(start - MAX_WINDOW, end, statuses)
        return [r for r in candidates if r.reservation_time < end and start < r.ends_at]

    async def search(
        self,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        status: Optional[ReservationStatus] = None,
        customer_name: Optional[str] = None,
        customer_phone: Optional[str] = None,
        sort_by: str = "reservation_time",
        descending: bool = False,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Reservation], int]:
        query = select(Reservation)
        count_query = select(func.count(Reservation.id))

        filters = []
        if from_date:
            filters.append(Reservation.reservation_time >= from_date)
        if to_date:
            filters.append(Reservation.reservation_time <= to_date)
        if status:
            filters.append(Reservation.status == status)
        if customer_name:
            filters.append(Reservation.customer_name.ilike(f"%{customer_name.strip()}%"))
        if customer_phone:
            filters.append(Reservation.customer_phone.like(f"%{customer_phone.strip()}%"))

        if filters:
            query = query.where(*filters)
            count_query = count_query.where(*filters)

        # Get total
        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        sort_column = Reservation.created_at if sort_by == "created_at" else Reservation.reservation_time
        order = sort_column.desc() if descending else sort_column.asc()
        query = query.order_by(order, Reservation.id).offset(offset).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def due_for_reminder(self, start: datetime, end: datetime) -> List[Reservation]:
        result = await self.db.execute(
            select(Reservation).where(
                Reservation.status == ReservationStatus.CONFIRMED,
                Reservation.reservation_time >= start,
                Reservation.reservation_time <= end,
                Reservation.reminder_sent.is_(None),
            )
        )
        return list(result.scalars().all())

    async def started_before(
        self,
        cutoff: datetime,
        statuses: Sequence[ReservationStatus],
    ) -> List[int]:
        """Ids of reservations in `statuses` that were due before `cutoff`"""
        result = await self.db.execute(
            select(Reservation.id)
            .where(Reservation.status.in_(statuses), Reservation.reservation_time < cutoff)
            .order_by(Reservation.reservation_time)
        )
        return list(result.scalars().all())

    async def in_service_at(
        self,
        moment: datetime,
        statuses: Sequence[ReservationStatus],
    ) -> List[Reservation]:
        """Reservations whose window contains `moment`"""
        result = await self.db.execute(
            select(Reservation).where(
                Reservation.status.in_(statuses),
                Reservation.reservation_time <= moment,
                Reservation.reservation_time > moment - MAX_WINDOW,
            )
        )
        return [r for r in result.scalars().all() if r.reservation_time <= moment < r.ends_at]
