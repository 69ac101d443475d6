"""Tests for concurrent bookings of the same tables"""

import asyncio
from contextlib import AsyncExitStack
from itertools import combinations

import pytest
from sqlalchemy import select

from app.errors import ConflictError
from app.models.customer import Customer
from app.models.reservation import Reservation, BLOCKING_STATUSES
from app.schemas.reservation import ReservationCreate
from app.services.availability import overlaps
from app.services.locking import KeyedLockRegistry, table_key
from app.services.reservations import ReservationService


async def attempt(service: ReservationService, data: ReservationCreate):
    try:
        reservation = await service.create(data)
        return reservation.id
    except ConflictError as e:
        return e


async def race(make_service, session_factory, requests):
    """Run each request on its own session at the same time"""
    async with AsyncExitStack() as stack:
        services = [
            make_service(await stack.enter_async_context(session_factory()))
            for _ in requests
        ]
        return await asyncio.gather(*(
            attempt(service, data) for service, data in zip(services, requests)
        ))


async def assert_no_double_booking(session_factory):
    async with session_factory() as db:
        result = await db.execute(select(Reservation).where(Reservation.status.in_(BLOCKING_STATUSES)))
        active = result.scalars().all()
    for first, second in combinations(active, 2):
        if set(first.table_ids) & set(second.table_ids):
            assert not overlaps(
                first.reservation_time, first.ends_at, second.reservation_time, second.ends_at
            )
    return active


@pytest.mark.asyncio
async def test_only_one_concurrent_booking_wins_a_table(make_service, session_factory, tables, evening):
    requests = [
        ReservationCreate(
            customer_name=f"Guest {index}",
            customer_phone=f"555000000{index}",
            number_of_guests=4,
            reservation_time=evening,
            table_ids=[tables[2]],
        )
        for index in range(5)
    ]

    results = await race(make_service, session_factory, requests)

    winners = [result for result in results if isinstance(result, int)]
    losers = [result for result in results if isinstance(result, ConflictError)]
    assert len(winners) == 1
    assert len(losers) == 4
    assert all(error.code == "NO_AVAILABILITY" for error in losers)

    active = await assert_no_double_booking(session_factory)
    assert [reservation.id for reservation in active] == winners


@pytest.mark.asyncio
async def test_concurrent_auto_assignment_never_overlaps(make_service, session_factory, tables, evening):
    # Three tables seat four; the two-top cannot take a party of four
    requests = [
        ReservationCreate(
            customer_name=f"Guest {index}",
            customer_phone=f"555100000{index}",
            number_of_guests=4,
            reservation_time=evening,
        )
        for index in range(6)
    ]

    results = await race(make_service, session_factory, requests)

    assert sum(isinstance(result, int) for result in results) == 3
    active = await assert_no_double_booking(session_factory)
    assert sorted(table_id for r in active for table_id in r.table_ids) == sorted(
        [tables[2], tables[3], tables[4]]
    )


@pytest.mark.asyncio
async def test_first_time_guest_booking_several_tables_at_once(make_service, session_factory, tables, evening):
    requests = [
        ReservationCreate(
            customer_name="Jane Guest",
            customer_phone="5559990000",
            number_of_guests=2,
            reservation_time=evening,
            table_ids=[tables[number]],
        )
        for number in (1, 2, 3, 4)
    ]

    results = await race(make_service, session_factory, requests)

    assert all(isinstance(result, int) for result in results)
    async with session_factory() as db:
        reservations = (await db.execute(select(Reservation))).scalars().all()
        customers = (await db.execute(select(Customer))).scalars().all()
    assert len(reservations) == 4
    assert len(customers) == 1
    assert {reservation.customer_id for reservation in reservations} == {customers[0].id}

@pytest.mark.asyncio
async def test_lock_timeout_is_reported(test_db, clock, notifier, tables, evening):
    locks = KeyedLockRegistry(timeout=0.05)
    service = ReservationService(test_db, clock=clock, notifier=notifier, locks=locks)

    async with locks.hold([table_key(tables[2])]):
        with pytest.raises(ConflictError) as exc:
            await service.create(ReservationCreate(
                customer_name="Jane Guest",
                customer_phone="5551234567",
                number_of_guests=2,
                reservation_time=evening,
                table_ids=[tables[2]],
            ))

    assert exc.value.code == "LOCK_TIMEOUT"
    assert not locks.is_held(table_key(tables[2]))


@pytest.mark.asyncio
async def test_locks_are_released_after_failure():
    locks = KeyedLockRegistry(timeout=1)

    with pytest.raises(RuntimeError):
        async with locks.hold([table_key(1), table_key(2)]):
            assert locks.is_held(table_key(1))
            raise RuntimeError("boom")

    assert not locks.is_held(table_key(1))
    assert not locks.is_held(table_key(2))
    async with locks.hold([table_key(2), table_key(1)]):
        pass
