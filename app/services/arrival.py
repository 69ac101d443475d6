"""Arrival-to-order bridge

On arrival a reservation, its tables and a new order change together:
status becomes Arrived, every assigned table becomes Occupied, and exactly one
order is opened for those tables. The three effects share one transaction.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.models.order import Order, OrderTable
from app.models.reservation import Reservation, ReservationStatus
from app.models.table import Table, TableStatus

logger = structlog.get_logger()


class OrderCreator:
    """Order-management collaborator.

    Stages a new order in the caller's session and flushes it so the id is
    known; it must not commit.
    """

    async def create_for_reservation(
        self,
        db: AsyncSession,
        reservation: Reservation,
        tables: List[Table],
        staff_id: Optional[int],
        now: datetime,
    ) -> Order:
        order = Order(
            order_number=f"ORD{now:%Y%m%d%H%M%S}{reservation.id}",
            reservation_id=reservation.id,
            customer_id=reservation.customer_id,
            number_of_guests=reservation.number_of_guests,
            status="Pending",
            notes=reservation.notes,
            created_by=staff_id,
            created_at=now,
            updated_at=now,
        )
        order.tables = [OrderTable(table_id=table.id) for table in tables]
        db.add(order)
        await db.flush()
        return order


_order_creator = OrderCreator()


def get_order_creator() -> OrderCreator:
    return _order_creator


class ArrivalBridge:
    def __init__(self, db: AsyncSession, order_creator: OrderCreator):
        self.db = db
        self.order_creator = order_creator

    async def apply(
        self,
        reservation: Reservation,
        tables: List[Table],
        staff_id: Optional[int],
        now: datetime,
    ) -> Order:
        """Stage all three arrival effects; the caller commits or rolls back"""
        reservation.status = ReservationStatus.ARRIVED
        reservation.arrived_by = staff_id
        reservation.arrived_at = now
        reservation.updated_at = now

        for table in tables:
            table.status = TableStatus.OCCUPIED

        order = await self.order_creator.create_for_reservation(
            self.db, reservation, tables, staff_id, now
        )
        reservation.order_id = order.id
        await self.db.flush()

        logger.info(
            "Reservation converted to order",
            reservation_id=reservation.id,
            order_id=order.id,
            table_ids=[table.id for table in tables],
        )
        return order
