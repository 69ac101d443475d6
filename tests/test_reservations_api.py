"""Tests for the reservation HTTP endpoints"""

from datetime import timedelta

import pytest
from httpx import AsyncClient


async def create(client: AsyncClient, body: dict) -> dict:
    response = await client.post("/reservations", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def error_code(response) -> str:
    return response.json()["error"]["code"]


@pytest.mark.asyncio
async def test_create_reservation(client: AsyncClient, tables, booking):
    data = await create(client, booking(notes="Window seat please", customer_email="jane@example.com"))

    assert data["status"] == "Pending"
    assert data["reservation_number"].startswith("RES20300114")
    assert data["number_of_guests"] == 2
    assert data["duration_minutes"] == 120
    assert data["ends_at"] == "2030-01-14T21:00:00"
    assert [t["table_id"] for t in data["tables"]] == [tables[1]]
    assert data["customer_email"] == "jane@example.com"
    assert data["created_by"] is None


@pytest.mark.asyncio
async def test_staff_booking_records_creator(authenticated_client: AsyncClient, tables, booking, test_user):
    data = await create(authenticated_client, booking())
    assert data["created_by"] == test_user["id"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides,status,code",
    [
        ({"customer_phone": None}, 400, "MISSING_CUSTOMER_INFO"),
        ({"number_of_guests": 0}, 400, "INVALID_GUESTS"),
        ({"number_of_guests": 25}, 400, "INVALID_GUESTS"),
        ({"reservation_time": "2030-01-14T09:15:00"}, 400, "INVALID_RESERVATION_TIME"),
        ({"reservation_time": "2030-01-14T23:00:00"}, 400, "INVALID_RESERVATION_TIME"),
        ({"table_ids": [9999]}, 404, "TABLE_NOT_FOUND"),
        ({"customer_phone": "12-34"}, 422, "INVALID_INPUT"),
        ({"number_of_guests": "many"}, 422, "INVALID_INPUT"),
    ],
)
async def test_create_rejections(client: AsyncClient, tables, booking, overrides, status, code):
    response = await client.post("/reservations", json=booking(**overrides))

    assert response.status_code == status
    assert error_code(response) == code
    assert response.json()["error"]["message"]


@pytest.mark.asyncio
async def test_taken_table_conflicts(client: AsyncClient, tables, booking):
    await create(client, booking(table_ids=[tables[2]]))

    response = await client.post(
        "/reservations",
        json=booking(customer_phone="5559876543", table_ids=[tables[2]]),
    )
    assert response.status_code == 409
    assert error_code(response) == "NO_AVAILABILITY"


@pytest.mark.asyncio
async def test_lookups(client: AsyncClient, tables, booking):
    created = await create(client, booking())

    by_id = await client.get(f"/reservations/{created['id']}")
    assert by_id.status_code == 200
    assert by_id.json()["reservation_number"] == created["reservation_number"]

    by_number = await client.get(f"/reservations/by-number/{created['reservation_number']}")
    assert by_number.status_code == 200
    assert by_number.json()["id"] == created["id"]

    mine = await client.get("/reservations/my-reservations", params={"phone": "5551234567"})
    assert mine.status_code == 200
    assert [item["id"] for item in mine.json()] == [created["id"]]
    assert mine.json()[0]["table_count"] == 1

    missing = await client.get("/reservations/424242")
    assert missing.status_code == 404
    assert error_code(missing) == "NOT_FOUND"

    unknown = await client.get("/reservations/by-number/RES000")
    assert unknown.status_code == 404


@pytest.mark.asyncio
async def test_my_reservations_validates_phone(client: AsyncClient, tables):
    response = await client.get("/reservations/my-reservations", params={"phone": "abc"})
    assert response.status_code == 400
    assert error_code(response) == "INVALID_PHONE"


@pytest.mark.asyncio
async def test_suggest_tables(client: AsyncClient, tables, evening):
    response = await client.get(
        "/reservations/suggest-tables",
        params={"numberOfGuests": 3, "reservationTime": evening.isoformat(), "preferredArea": "Terrace"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["available"] is True
    assert [t["table_id"] for t in data["tables"]] == [tables[3], tables[2], tables[4]]

    none = await client.get(
        "/reservations/suggest-tables",
        params={"numberOfGuests": 8, "reservationTime": evening.isoformat()},
    )
    assert none.json()["available"] is False
    assert none.json()["tables"] == []

    invalid = await client.get(
        "/reservations/suggest-tables",
        params={"numberOfGuests": 0, "reservationTime": evening.isoformat()},
    )
    assert invalid.status_code == 400
    assert error_code(invalid) == "INVALID_GUESTS"


@pytest.mark.asyncio
async def test_capacity(client: AsyncClient, tables):
    response = await client.get("/reservations/capacity")

    assert response.status_code == 200
    data = response.json()
    assert data["capacity_percent"] == 0.0
    assert data["percent"] == 0.0
    assert data["is_near_full"] is False


@pytest.mark.asyncio
async def test_customer_cancel(client: AsyncClient, tables, booking):
    created = await create(client, booking())
    url = f"/reservations/by-number/{created['reservation_number']}/cancel"

    wrong = await client.post(url, json={"phone": "5550000000"})
    assert wrong.status_code == 400
    assert error_code(wrong) == "CANNOT_CANCEL"

    response = await client.post(url, json={"phone": "5551234567", "cancel_reason": "Sick"})
    assert response.status_code == 200
    assert response.json()["status"] == "Cancelled"
    assert response.json()["cancel_reason"] == "Sick"


@pytest.mark.asyncio
async def test_staff_endpoints_require_token(client: AsyncClient, tables, booking):
    created = await create(client, booking())

    response = await client.put(f"/reservations/{created['id']}/confirm")
    assert response.status_code == 401
    assert error_code(response) == "UNAUTHORIZED"

    listing = await client.get("/reservations")
    assert listing.status_code == 401


@pytest.mark.asyncio
async def test_confirm_arrive_flow(authenticated_client: AsyncClient, tables, booking, clock, notifier):
    created = await create(authenticated_client, booking(number_of_guests=9))
    reservation_id = created["id"]

    early = await authenticated_client.post(f"/reservations/{reservation_id}/arrive")
    assert early.status_code == 400
    assert error_code(early) == "CANNOT_ARRIVE"

    confirmed = await authenticated_client.put(f"/reservations/{reservation_id}/confirm")
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "Confirmed"
    assert ("confirmed", reservation_id) in notifier.sent

    clock.current = clock.current.replace(hour=19, minute=5)
    arrived = await authenticated_client.post(f"/reservations/{reservation_id}/arrive")
    assert arrived.status_code == 200
    assert arrived.json()["reservation_id"] == reservation_id
    assert arrived.json()["order_id"]

    detail = (await authenticated_client.get(f"/reservations/{reservation_id}")).json()
    assert detail["status"] == "Arrived"
    assert detail["order_id"] == arrived.json()["order_id"]

    tables_response = await authenticated_client.get("/tables")
    occupied = {t["id"] for t in tables_response.json() if t["status"] == "Occupied"}
    assert occupied == {t["table_id"] for t in created["tables"]}

    again = await authenticated_client.delete(f"/reservations/{reservation_id}")
    assert again.status_code == 400
    assert error_code(again) == "CANNOT_CANCEL"


@pytest.mark.asyncio
async def test_staff_cancel_and_reconfirm(authenticated_client: AsyncClient, tables, booking, test_user):
    created = await create(authenticated_client, booking())

    response = await authenticated_client.request(
        "DELETE",
        f"/reservations/{created['id']}",
        json={"cancel_reason": "Kitchen closed"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "Cancelled"
    assert data["cancel_reason"] == "Kitchen closed"
    assert data["cancelled_by"] == test_user["id"]

    confirm = await authenticated_client.put(f"/reservations/{created['id']}/confirm")
    assert confirm.status_code == 400
    assert error_code(confirm) == "CANNOT_CONFIRM"


@pytest.mark.asyncio
async def test_no_show(authenticated_client: AsyncClient, tables, booking):
    created = await create(authenticated_client, booking())

    pending = await authenticated_client.put(f"/reservations/{created['id']}/no-show")
    assert pending.status_code == 400
    assert error_code(pending) == "CANNOT_MARK_NO_SHOW"

    await authenticated_client.put(f"/reservations/{created['id']}/confirm")
    response = await authenticated_client.put(f"/reservations/{created['id']}/no-show")
    assert response.status_code == 200
    assert response.json()["status"] == "NoShow"


@pytest.mark.asyncio
async def test_list_reservations(authenticated_client: AsyncClient, tables, booking, evening):
    for hours, phone in enumerate(["5550000001", "5550000002", "5550000003"]):
        await create(authenticated_client, booking(
            customer_phone=phone,
            customer_name=f"Guest {hours}",
            reservation_time=(evening + timedelta(hours=hours)).isoformat(),
        ))

    response = await authenticated_client.get("/reservations", params={"page_size": 2})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["total_pages"] == 2
    assert data["has_next"] is True
    assert data["has_previous"] is False
    assert [item["customer_name"] for item in data["items"]] == ["Guest 0", "Guest 1"]

    filtered = await authenticated_client.get("/reservations", params={"customer_phone": "0003"})
    assert [item["customer_name"] for item in filtered.json()["items"]] == ["Guest 2"]

    bad = await authenticated_client.get("/reservations", params={"page": 0})
    assert bad.status_code == 422
    assert error_code(bad) == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_dashboard(authenticated_client: AsyncClient, tables, booking, clock, evening):
    first = await create(authenticated_client, booking())
    await create(authenticated_client, booking(
        customer_phone="5559876543",
        reservation_time=(evening - timedelta(hours=2)).isoformat(),
    ))
    await authenticated_client.put(f"/reservations/{first['id']}/confirm")

    clock.current = evening - timedelta(minutes=30)
    response = await authenticated_client.get("/reservations/dashboard", params={"date": "2030-01-14"})

    assert response.status_code == 200
    data = response.json()
    assert data["date"] == "2030-01-14"
    assert data["total_reservations"] == 2
    assert data["confirmed_count"] == 1
    assert data["pending_count"] == 1
    assert data["by_hour"] == {"17": 1, "19": 1}
    assert [item["id"] for item in data["upcoming_reservations"]] == [first["id"]]
    assert len(data["overdue_reservations"]) == 1


@pytest.mark.asyncio
async def test_timeline(authenticated_client: AsyncClient, tables, booking):
    created = await create(authenticated_client, booking())

    response = await authenticated_client.get("/reservations/timeline", params={"date": "2030-01-14"})

    assert response.status_code == 200
    slots = response.json()["time_slots"]
    assert slots[0]["start_time"] == "2030-01-14T10:00:00"
    assert slots[-1]["end_time"] == "2030-01-14T23:00:00"
    assert len(slots) == 26

    def cell(start, table_id):
        slot = next(s for s in slots if s["start_time"] == start)
        return next(c for c in slot["tables"] if c["table_id"] == table_id)

    assert cell("2030-01-14T19:00:00", tables[1])["status"] == "Pending"
    assert cell("2030-01-14T20:30:00", tables[1])["reservation_id"] == created["id"]
    assert cell("2030-01-14T21:00:00", tables[1])["status"] == "Available"
    assert cell("2030-01-14T19:00:00", tables[2])["status"] == "Available"


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client: AsyncClient):
    response = await client.get("/nowhere")
    assert response.status_code == 404
    assert error_code(response) == "NOT_FOUND"


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
