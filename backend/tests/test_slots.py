"""
Tests for slot CRUD endpoints.
"""

from datetime import date, time, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from slotbook.models.booking import Booking, BookingStatus
from slotbook.models.slot import Slot
from slotbook.models.waitlist import WaitlistEntry
from slotbook.schemas.profile import ProfileUpdate
from slotbook.services.profile_service import upsert_profile

SLOT_DATE = date.today() + timedelta(days=30)


@pytest.mark.asyncio
async def test_create_slot(client: AsyncClient, owner_headers):
    """Authenticated user can create a slot; the ledger starts empty."""
    response = await client.post(
        "/api/v1/slots/",
        json={
            "name": "Friday supper club",
            "date": SLOT_DATE.isoformat(),
            "start_time": "19:30:00",
            "end_time": "22:00:00",
            "total_tables": 6,
            "booking_mode": "lottery",
            "waitlist_enabled": True,
        },
        headers=owner_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["total_tables"] == 6
    assert data["booked_tables"] == 0
    assert data["tables_remaining"] == 6
    assert data["booking_mode"] == "lottery"


@pytest.mark.asyncio
async def test_create_slot_unauthenticated(client: AsyncClient):
    response = await client.post("/api/v1/slots/", json={
        "date": SLOT_DATE.isoformat(),
        "start_time": "19:00:00",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_slot_zero_tables(client: AsyncClient, owner_headers):
    response = await client.post(
        "/api/v1/slots/",
        json={"date": SLOT_DATE.isoformat(), "start_time": "19:00:00", "total_tables": 0},
        headers=owner_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_slot_end_before_start(client: AsyncClient, owner_headers):
    response = await client.post(
        "/api/v1/slots/",
        json={"date": SLOT_DATE.isoformat(), "start_time": "19:00:00", "end_time": "18:00:00"},
        headers=owner_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_slot_same_time_twice(client: AsyncClient, owner_headers):
    payload = {"date": SLOT_DATE.isoformat(), "start_time": "19:00:00"}
    first = await client.post("/api/v1/slots/", json=payload, headers=owner_headers)
    second = await client.post("/api/v1/slots/", json=payload, headers=owner_headers)
    assert first.status_code == 201
    assert second.status_code == 422
    assert second.json()["code"] == "invalid_request"


@pytest.mark.asyncio
async def test_list_slots_filters_by_meal_time(client: AsyncClient, owner_headers):
    for start in ["08:00:00", "12:30:00", "19:00:00"]:
        await client.post(
            "/api/v1/slots/",
            json={"date": SLOT_DATE.isoformat(), "start_time": start},
            headers=owner_headers,
        )

    all_slots = await client.get("/api/v1/slots/")
    assert all_slots.status_code == 200
    data = all_slots.json()
    assert data["total"] == 3
    assert data["cached"] is False
    assert [s["start_time"] for s in data["slots"]] == ["08:00:00", "12:30:00", "19:00:00"]

    dinner = await client.get("/api/v1/slots/", params={"meal_time": "dinner"})
    assert [s["start_time"] for s in dinner.json()["slots"]] == ["19:00:00"]


@pytest.mark.asyncio
async def test_get_slot_not_found(client: AsyncClient):
    response = await client.get("/api/v1/slots/99999")
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


@pytest.mark.asyncio
async def test_raise_capacity(client: AsyncClient, owner_headers, fcfs_slot):
    response = await client.patch(
        f"/api/v1/slots/{fcfs_slot.id}",
        json={"total_tables": 5, "name": "Bigger room"},
        headers=owner_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total_tables"] == 5
    assert data["name"] == "Bigger room"
    assert data["tables_remaining"] == 5


@pytest.mark.asyncio
async def test_cannot_lower_capacity_below_booked(
    client: AsyncClient, owner_headers, alice_headers, bob_headers, make_slot
):
    slot = await make_slot(total_tables=3)
    slot_id = slot.id
    for headers in (alice_headers, bob_headers):
        await client.post("/api/v1/bookings/", json={"slot_id": slot_id}, headers=headers)

    too_low = await client.patch(
        f"/api/v1/slots/{slot_id}", json={"total_tables": 1}, headers=owner_headers
    )
    assert too_low.status_code == 400
    assert too_low.json()["code"] == "invalid_state"

    exact = await client.patch(
        f"/api/v1/slots/{slot_id}", json={"total_tables": 2}, headers=owner_headers
    )
    assert exact.status_code == 200
    assert exact.json()["tables_remaining"] == 0


@pytest.mark.asyncio
async def test_only_owner_can_edit(client: AsyncClient, alice_headers, fcfs_slot):
    response = await client.patch(
        f"/api/v1/slots/{fcfs_slot.id}", json={"total_tables": 10}, headers=alice_headers
    )
    assert response.status_code == 403
    assert response.json()["code"] == "unauthorized"


@pytest.mark.asyncio
async def test_admin_can_edit_any_slot(client: AsyncClient, admin, auth_for, fcfs_slot):
    response = await client.patch(
        f"/api/v1/slots/{fcfs_slot.id}", json={"waitlist_enabled": False}, headers=auth_for(admin)
    )
    assert response.status_code == 200
    assert response.json()["waitlist_enabled"] is False


@pytest.mark.asyncio
async def test_delete_slot_cancels_bookings_and_clears_waitlist(
    client: AsyncClient, db_session, owner_headers, alice_headers, bob_headers, alice, bob, make_slot
):
    """Deleting a slot cancels every booking and removes the queue."""
    slot = await make_slot(total_tables=1, waitlist_enabled=True)
    slot_id = slot.id
    booked = await client.post("/api/v1/bookings/", json={"slot_id": slot_id}, headers=alice_headers)
    queued = await client.post("/api/v1/waitlist/", json={"slot_id": slot_id}, headers=bob_headers)
    assert booked.status_code == 201
    assert queued.status_code == 201

    response = await client.delete(f"/api/v1/slots/{slot_id}", headers=owner_headers)
    assert response.status_code == 200
    assert response.json()["bookings_cancelled"] == 1
    assert response.json()["waitlist_removed"] == 1

    assert (await client.get(f"/api/v1/slots/{slot_id}")).status_code == 404

    booking = (
        await db_session.execute(select(Booking).where(Booking.id == booked.json()["id"]))
    ).scalar_one()
    assert booking.status == BookingStatus.CANCELLED.value
    assert booking.slot_id is None

    entries = (await db_session.execute(select(WaitlistEntry))).scalars().all()
    assert entries == []

    mine = await client.get("/api/v1/bookings/", headers=alice_headers)
    assert [b["status"] for b in mine.json()] == ["cancelled"]


@pytest.mark.asyncio
async def test_only_owner_can_delete(client: AsyncClient, alice_headers, fcfs_slot):
    response = await client.delete(f"/api/v1/slots/{fcfs_slot.id}", headers=alice_headers)
    assert response.status_code == 403


async def _add_slot(db_session, owner_id, on_date, hour=19, total=2, booked=0):
    slot = Slot(
        name="Supper",
        date=on_date,
        start_time=time(hour, 0),
        total_tables=total,
        booked_tables=booked,
        owner_id=owner_id,
    )
    db_session.add(slot)
    await db_session.commit()
    return slot.id


@pytest.mark.asyncio
async def test_month_availability_counts_open_slots(client: AsyncClient, db_session, owner):
    owner_id = owner.id
    await _add_slot(db_session, owner_id, date(2031, 3, 5), hour=18)
    await _add_slot(db_session, owner_id, date(2031, 3, 5), hour=20, total=2, booked=2)
    await _add_slot(db_session, owner_id, date(2031, 3, 20), hour=18)
    await _add_slot(db_session, owner_id, date(2031, 3, 20), hour=20, total=3, booked=1)
    await _add_slot(db_session, owner_id, date(2031, 3, 31), total=1, booked=1)
    await _add_slot(db_session, owner_id, date(2031, 4, 1))

    response = await client.get("/api/v1/slots/availability", params={"year": 2031, "month": 3})

    assert response.status_code == 200
    data = response.json()
    assert (data["year"], data["month"]) == (2031, 3)
    assert data["days"] == [
        {"date": "2031-03-05", "count": 1},
        {"date": "2031-03-20", "count": 2},
    ]


@pytest.mark.asyncio
async def test_month_availability_rejects_bad_month(client: AsyncClient):
    response = await client.get("/api/v1/slots/availability", params={"year": 2031, "month": 13})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_upcoming_slots_carry_host_name(client: AsyncClient, db_session, owner, alice):
    owner_id, alice_id = owner.id, alice.id
    await upsert_profile(db_session, owner_id, ProfileUpdate(display_name="Chef Ada"))
    today = date.today()
    await _add_slot(db_session, owner_id, today - timedelta(days=1))
    hosted = await _add_slot(db_session, owner_id, today + timedelta(days=3))
    anonymous = await _add_slot(db_session, alice_id, today + timedelta(days=1))

    response = await client.get("/api/v1/slots/upcoming")

    assert response.status_code == 200
    data = response.json()
    assert [s["id"] for s in data] == [anonymous, hosted]
    assert [s["host_name"] for s in data] == [None, "Chef Ada"]

    limited = await client.get("/api/v1/slots/upcoming", params={"limit": 1})
    assert [s["id"] for s in limited.json()] == [anonymous]


@pytest.mark.asyncio
async def test_edit_end_before_start_is_invalid_request(client: AsyncClient, owner_headers, fcfs_slot):
    slot_id = fcfs_slot.id
    start_hour = fcfs_slot.start_time.hour
    response = await client.patch(
        f"/api/v1/slots/{slot_id}",
        json={"end_time": f"{start_hour - 1:02d}:00:00"},
        headers=owner_headers,
    )
    assert response.status_code == 422
    assert response.json()["code"] == "invalid_request"
