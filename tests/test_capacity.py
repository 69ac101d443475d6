"""Tests for the capacity estimate"""

from datetime import timedelta

import pytest

from app.models.table import Table, TableStatus
from app.schemas.reservation import ReservationCreate


async def confirmed(service, when, guests, table_id, phone="5551234567") -> int:
    reservation = await service.create(ReservationCreate(
        customer_name="Jane Guest",
        customer_phone=phone,
        number_of_guests=guests,
        reservation_time=when,
        table_ids=[table_id],
    ))
    await service.confirm(reservation.id, None)
    return reservation.id


@pytest.mark.asyncio
async def test_empty_restaurant(service, tables):
    assert await service.current_capacity_percent() == 0.0


@pytest.mark.asyncio
async def test_no_tables_means_zero(service):
    assert await service.current_capacity_percent() == 0.0


@pytest.mark.asyncio
async def test_counts_confirmed_parties_in_service(service, tables, evening, clock):
    await confirmed(service, evening, 4, tables[2])
    # Pending bookings are not committed yet
    await service.create(ReservationCreate(
        customer_name="Maybe",
        customer_phone="5559876543",
        number_of_guests=6,
        reservation_time=evening,
        table_ids=[tables[4]],
    ))

    clock.current = evening - timedelta(minutes=1)
    assert await service.current_capacity_percent() == 0.0

    clock.advance(minutes=1)
    assert await service.current_capacity_percent() == pytest.approx(4 / 16)

    clock.advance(hours=2)
    assert await service.current_capacity_percent() == 0.0


@pytest.mark.asyncio
async def test_walk_in_tables_count_once(service, tables, evening, clock, test_db):
    reservation_id = await confirmed(service, evening, 3, tables[2])
    clock.current = evening + timedelta(minutes=5)
    await service.arrive(reservation_id, None)

    # Arrived party: its table is occupied but counted by guests only
    assert await service.current_capacity_percent() == pytest.approx(3 / 16)

    walk_in = await test_db.get(Table, tables[4])
    walk_in.status = TableStatus.OCCUPIED
    await test_db.commit()

    assert await service.current_capacity_percent() == pytest.approx((3 + 6) / 16)


@pytest.mark.asyncio
async def test_estimate_is_bounded_and_monotonic(service, tables, evening, clock, test_db):
    readings = []
    clock.current = evening - timedelta(hours=1)
    for index, table_number in enumerate([1, 2, 3, 4]):
        await confirmed(service, evening, 2 if table_number == 1 else 4, tables[table_number], f"55500000{index}0")
    clock.current = evening

    readings.append(await service.current_capacity_percent())

    for table_number in (1, 2, 3, 4):
        table = await test_db.get(Table, tables[table_number])
        table.status = TableStatus.OCCUPIED
    await test_db.commit()
    readings.append(await service.current_capacity_percent())

    assert readings == sorted(readings)
    assert all(0.0 <= value <= 1.0 for value in readings)
    assert readings[0] == pytest.approx(14 / 16)
