"""Read-only reservation views for staff and customers"""

import math
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.clock import Clock
from app.config import Settings, settings as default_settings
from app.models.reservation import Reservation, ReservationStatus, BLOCKING_STATUSES
from app.models.table import Table, TableStatus
from app.repositories import ReservationRepository, TableRepository
from app.schemas.reservation import (
    ReservationDetail,
    ReservationListItem,
    ReservationListResponse,
    ReservationQuery,
    DashboardResponse,
    TimelineResponse,
    TimeSlot,
    TableSlot,
)
from app.schemas.table import TableSuggestion
from app.services.availability import overlaps
from app.services.capacity import CapacityEstimator


class ReservationQueries:
    def __init__(
        self,
        db: AsyncSession,
        clock: Optional[Clock] = None,
        config: Optional[Settings] = None,
    ):
        self.config = config or default_settings
        self.clock = clock or Clock(self.config.restaurant_timezone)
        self.tables = TableRepository(db)
        self.reservations = ReservationRepository(db)
        self.capacity = CapacityEstimator(self.tables, self.reservations)

    async def _tables_for(self, reservations: Iterable[Reservation]) -> Dict[int, Table]:
        ids = {table_id for reservation in reservations for table_id in reservation.table_ids}
        return {table.id: table for table in await self.tables.get_many(ids)}

    @staticmethod
    def _list_item(reservation: Reservation, tables: Dict[int, Table]) -> ReservationListItem:
        names = [tables[table_id].display_name for table_id in reservation.table_ids if table_id in tables]
        return ReservationListItem(
            id=reservation.id,
            reservation_number=reservation.reservation_number,
            customer_id=reservation.customer_id,
            customer_name=reservation.customer_name,
            customer_phone=reservation.customer_phone,
            number_of_guests=reservation.number_of_guests,
            reservation_time=reservation.reservation_time,
            status=reservation.status,
            table_count=len(reservation.table_ids),
            table_names=", ".join(names),
            created_at=reservation.created_at,
        )

    async def list_items(self, reservations: List[Reservation]) -> List[ReservationListItem]:
        tables = await self._tables_for(reservations)
        return [self._list_item(reservation, tables) for reservation in reservations]

    async def detail(self, reservation: Reservation) -> ReservationDetail:
        tables = await self._tables_for([reservation])
        return ReservationDetail(
            id=reservation.id,
            reservation_number=reservation.reservation_number,
            customer_id=reservation.customer_id,
            customer_name=reservation.customer_name,
            customer_phone=reservation.customer_phone,
            customer_email=reservation.customer_email,
            number_of_guests=reservation.number_of_guests,
            reservation_time=reservation.reservation_time,
            ends_at=reservation.ends_at,
            duration_minutes=reservation.duration_minutes,
            status=reservation.status,
            notes=reservation.notes,
            preferred_area=reservation.preferred_area,
            cancel_reason=reservation.cancel_reason,
            tables=[
                TableSuggestion.from_table(tables[table_id])
                for table_id in reservation.table_ids
                if table_id in tables
            ],
            created_by=reservation.created_by,
            confirmed_by=reservation.confirmed_by,
            cancelled_by=reservation.cancelled_by,
            arrived_by=reservation.arrived_by,
            confirmed_at=reservation.confirmed_at,
            cancelled_at=reservation.cancelled_at,
            arrived_at=reservation.arrived_at,
            order_id=reservation.order_id,
            created_at=reservation.created_at,
            updated_at=reservation.updated_at,
        )

    async def search(self, query: ReservationQuery) -> ReservationListResponse:
        """Filtered, paginated list for the back office"""
        reservations, total = await self.reservations.search(
            from_date=query.from_date,
            to_date=query.to_date,
            status=query.status,
            customer_name=query.customer_name,
            customer_phone=query.customer_phone,
            sort_by=query.sort_by,
            descending=query.descending,
            offset=(query.page - 1) * query.page_size,
            limit=query.page_size,
        )
        total_pages = math.ceil(total / query.page_size) if total else 0
        return ReservationListResponse(
            items=await self.list_items(reservations),
            total=total,
            page=query.page,
            page_size=query.page_size,
            total_pages=total_pages,
            has_previous=query.page > 1,
            has_next=query.page < total_pages,
        )

    async def customer_reservations(self, phone: str) -> List[ReservationListItem]:
        return await self.list_items(await self.reservations.by_phone(phone.strip()))

    async def dashboard(self, day: date) -> DashboardResponse:
        """Status counts, hourly load and the reservations needing attention today"""
        start = datetime.combine(day, time.min)
        reservations = await self.reservations.between(start, start + timedelta(days=1))
        counts = Counter(reservation.status for reservation in reservations)
        by_hour = Counter(
            reservation.reservation_time.hour
            for reservation in reservations
            if reservation.status in BLOCKING_STATUSES
        )

        now = self.clock.now()
        waiting = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)
        upcoming = [
            reservation
            for reservation in reservations
            if reservation.status in waiting and now <= reservation.reservation_time <= now + timedelta(hours=1)
        ]
        overdue_before = now - timedelta(minutes=self.config.no_show_grace_minutes)
        overdue = [
            reservation
            for reservation in reservations
            if reservation.status in waiting and reservation.reservation_time < overdue_before
        ]

        return DashboardResponse(
            date=day,
            total_reservations=len(reservations),
            pending_count=counts[ReservationStatus.PENDING],
            confirmed_count=counts[ReservationStatus.CONFIRMED],
            arrived_count=counts[ReservationStatus.ARRIVED],
            cancelled_count=counts[ReservationStatus.CANCELLED],
            no_show_count=counts[ReservationStatus.NO_SHOW],
            by_hour=dict(sorted(by_hour.items())),
            current_capacity_percent=round(await self.capacity.current_percent(now), 4),
            upcoming_reservations=await self.list_items(upcoming),
            overdue_reservations=await self.list_items(overdue),
        )

    async def timeline(self, day: date) -> TimelineResponse:
        """Per-table occupancy in fixed slots across opening hours"""
        step = timedelta(minutes=self.config.timeline_slot_minutes)
        first = datetime.combine(day, time(hour=self.config.opening_hour))
        last = datetime.combine(day, time(hour=self.config.closing_hour)) + timedelta(hours=1)

        tables = await self.tables.list()
        reservations = await self.reservations.overlapping(first, last)
        by_table: Dict[int, List[Reservation]] = {}
        for reservation in reservations:
            for table_id in reservation.table_ids:
                by_table.setdefault(table_id, []).append(reservation)

        now = self.clock.now()
        slots = []
        slot_start = first
        while slot_start < last:
            slot_end = slot_start + step
            cells = []
            for table in tables:
                holder = next(
                    (
                        reservation
                        for reservation in by_table.get(table.id, [])
                        if overlaps(slot_start, slot_end, reservation.reservation_time, reservation.ends_at)
                    ),
                    None,
                )
                if holder:
                    cells.append(TableSlot(
                        table_id=table.id,
                        table_name=table.display_name,
                        reservation_id=holder.id,
                        reservation_number=holder.reservation_number,
                        customer_name=holder.customer_name,
                        status=holder.status.value,
                    ))
                elif table.status == TableStatus.OCCUPIED and slot_start <= now < slot_end:
                    cells.append(TableSlot(table_id=table.id, table_name=table.display_name, status="InOrder"))
                else:
                    cells.append(TableSlot(table_id=table.id, table_name=table.display_name))
            slots.append(TimeSlot(start_time=slot_start, end_time=slot_end, tables=cells))
            slot_start = slot_end

        return TimelineResponse(date=day, time_slots=slots)
