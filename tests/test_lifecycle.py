"""Tests for reservation status transitions, notifications and arrival"""

from datetime import timedelta

import pytest
from sqlalchemy import select, func

from app.errors import IllegalTransitionError, InternalError, NotFoundError
from app.models.order import Order
from app.models.reservation import Reservation, ReservationStatus, TRANSITIONS
from app.models.table import Table, TableStatus
from app.schemas.reservation import ReservationCreate
from app.services import notifications
from app.services.arrival import OrderCreator
from app.services.notifications import NotificationSink


async def book(service, when, table_ids=None, guests=2, phone="5551234567") -> int:
    reservation = await service.create(ReservationCreate(
        customer_name="Jane Guest",
        customer_phone=phone,
        number_of_guests=guests,
        reservation_time=when,
        table_ids=table_ids,
    ))
    return reservation.id


class FailingOrderCreator(OrderCreator):
    """Stages the order, then fails before the caller can commit"""

    async def create_for_reservation(self, db, reservation, tables, staff_id, now):
        await super().create_for_reservation(db, reservation, tables, staff_id, now)
        raise RuntimeError("order service unavailable")


class BrokenNotifier(NotificationSink):
    def notify(self, kind, reservation):
        raise RuntimeError("sms gateway down")


def test_transition_table():
    assert ReservationStatus.PENDING.can_transition_to(ReservationStatus.CONFIRMED)
    assert ReservationStatus.PENDING.can_transition_to(ReservationStatus.CANCELLED)
    assert not ReservationStatus.PENDING.can_transition_to(ReservationStatus.ARRIVED)
    assert ReservationStatus.CONFIRMED.can_transition_to(ReservationStatus.NO_SHOW)
    for status in (ReservationStatus.ARRIVED, ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW):
        assert status.is_terminal
        assert TRANSITIONS[status] == frozenset()
    assert not ReservationStatus.CANCELLED.blocks_tables
    assert ReservationStatus.ARRIVED.blocks_tables


@pytest.mark.asyncio
async def test_confirm_pending(service, tables, evening, test_user, notifier):
    reservation_id = await book(service, evening)

    reservation = await service.confirm(reservation_id, test_user["id"])

    assert reservation.status == ReservationStatus.CONFIRMED
    assert reservation.confirmed_by == test_user["id"]
    assert reservation.confirmed_at is not None
    assert notifier.sent == [(notifications.CONFIRMED, reservation_id)]


@pytest.mark.asyncio
async def test_confirm_twice_is_a_noop(service, tables, evening, notifier):
    reservation_id = await book(service, evening)

    await service.confirm(reservation_id, None)
    reservation = await service.confirm(reservation_id, None)

    assert reservation.status == ReservationStatus.CONFIRMED
    assert notifier.sent == [(notifications.CONFIRMED, reservation_id)]


@pytest.mark.asyncio
async def test_confirm_cancelled_fails(service, tables, evening):
    reservation_id = await book(service, evening)
    await service.cancel(reservation_id, None)

    with pytest.raises(IllegalTransitionError) as exc:
        await service.confirm(reservation_id, None)
    assert exc.value.code == "CANNOT_CONFIRM"

    reservation = await service.get(reservation_id)
    assert reservation.status == ReservationStatus.CANCELLED


@pytest.mark.asyncio
async def test_cancel_from_pending_and_confirmed(service, tables, evening, notifier):
    pending_id = await book(service, evening, table_ids=[tables[1]])
    confirmed_id = await book(service, evening, table_ids=[tables[2]], phone="5559876543")
    await service.confirm(confirmed_id, None)

    pending = await service.cancel(pending_id, None, "Changed plans")
    confirmed = await service.cancel(confirmed_id, None)

    assert pending.status == ReservationStatus.CANCELLED
    assert pending.cancel_reason == "Changed plans"
    assert confirmed.status == ReservationStatus.CANCELLED
    assert (notifications.CANCELLED, pending_id) in notifier.sent
    assert (notifications.CANCELLED, confirmed_id) in notifier.sent


@pytest.mark.asyncio
async def test_notification_failure_keeps_transition(make_service, tables, evening):
    service = make_service()
    service.notifier = BrokenNotifier()
    reservation_id = await book(service, evening)

    reservation = await service.confirm(reservation_id, None)

    assert reservation.status == ReservationStatus.CONFIRMED
    assert (await service.get(reservation_id)).status == ReservationStatus.CONFIRMED


@pytest.mark.asyncio
async def test_unknown_reservation(service, tables):
    with pytest.raises(NotFoundError):
        await service.confirm(424242, None)
    with pytest.raises(NotFoundError):
        await service.arrive(424242, None)


@pytest.mark.asyncio
async def test_mark_no_show_requires_confirmed(service, tables, evening):
    reservation_id = await book(service, evening)

    with pytest.raises(IllegalTransitionError) as exc:
        await service.mark_no_show(reservation_id)
    assert exc.value.code == "CANNOT_MARK_NO_SHOW"

    await service.confirm(reservation_id, None)
    reservation = await service.mark_no_show(reservation_id)
    assert reservation.status == ReservationStatus.NO_SHOW
    assert await service.is_table_available(tables[1], evening)


@pytest.mark.asyncio
async def test_customer_cancel_checks_phone_and_cutoff(service, tables, evening, clock):
    reservation_id = await book(service, evening)
    number = (await service.get(reservation_id)).reservation_number

    assert await service.can_customer_cancel(number, "5550000000") is False

    clock.current = evening - timedelta(minutes=29)
    assert await service.can_customer_cancel(number, "5551234567") is False
    with pytest.raises(IllegalTransitionError) as exc:
        await service.customer_cancel(number, "5551234567")
    assert exc.value.code == "CANNOT_CANCEL"

    clock.current = evening - timedelta(minutes=30)
    reservation = await service.customer_cancel(number, "5551234567", "Sick")
    assert reservation.status == ReservationStatus.CANCELLED
    assert reservation.cancelled_by is None


@pytest.mark.asyncio
async def test_arrive_pending_fails(service, tables, evening):
    reservation_id = await book(service, evening)

    with pytest.raises(IllegalTransitionError) as exc:
        await service.arrive(reservation_id, None)
    assert exc.value.code == "CANNOT_ARRIVE"


@pytest.mark.asyncio
async def test_arrive_opens_order_and_occupies_tables(service, tables, evening, test_user, session_factory):
    reservation_id = await book(service, evening, guests=9)
    await service.confirm(reservation_id, test_user["id"])

    order_id = await service.arrive(reservation_id, test_user["id"])

    async with session_factory() as db:
        reservation = (await db.execute(select(Reservation).where(Reservation.id == reservation_id))).scalar_one()
        order = (await db.execute(select(Order).where(Order.id == order_id))).scalar_one()
        occupied = (await db.execute(select(Table).where(Table.status == TableStatus.OCCUPIED))).scalars().all()

        assert reservation.status == ReservationStatus.ARRIVED
        assert reservation.order_id == order_id
        assert reservation.arrived_by == test_user["id"]
        assert order.reservation_id == reservation_id
        assert order.number_of_guests == 9
        assert sorted(order.table_ids) == sorted(reservation.table_ids)
        assert sorted(t.id for t in occupied) == sorted(reservation.table_ids)


@pytest.mark.asyncio
async def test_cancel_after_arrival_fails(service, tables, evening):
    reservation_id = await book(service, evening)
    await service.confirm(reservation_id, None)
    await service.arrive(reservation_id, None)

    with pytest.raises(IllegalTransitionError) as exc:
        await service.cancel(reservation_id, None)
    assert exc.value.code == "CANNOT_CANCEL"


@pytest.mark.asyncio
async def test_failed_order_rolls_back_arrival(make_service, tables, evening, session_factory):
    service = make_service(order_creator=FailingOrderCreator())
    reservation_id = await book(service, evening)
    await service.confirm(reservation_id, None)

    with pytest.raises(InternalError):
        await service.arrive(reservation_id, None)

    async with session_factory() as db:
        reservation = (await db.execute(select(Reservation).where(Reservation.id == reservation_id))).scalar_one()
        orders = (await db.execute(select(func.count(Order.id)))).scalar()
        occupied = (await db.execute(
            select(func.count(Table.id)).where(Table.status == TableStatus.OCCUPIED)
        )).scalar()

        assert reservation.status == ReservationStatus.CONFIRMED
        assert reservation.order_id is None
        assert orders == 0
        assert occupied == 0
