"""
Tests for profiles, participant payment info and the outbound participant webhook.
"""

import json
from datetime import time

import httpx
import pytest
from httpx import AsyncClient

from slotbook.core.exceptions import Unauthorized, WebhookDeliveryFailed, WebhookNotConfigured
from slotbook.models.user import UserProfile
from slotbook.services.admission_service import request_seat
from slotbook.services.webhook_service import format_event_time, send_participant_webhook


@pytest.fixture
def consenting(db_session):
    """Give a user a profile with payment handles and a consent flag."""

    async def _profile(user, consent=True, webhook_url=None):
        profile = UserProfile(
            user_id=user.id,
            display_name=user.username.title(),
            venmo_username=f"{user.username}-venmo",
            zelle_identifier=f"{user.username}@zelle",
            payment_sharing_consent=consent,
            webhook_url=webhook_url,
        )
        db_session.add(profile)
        await db_session.commit()
        return profile

    return _profile


def _capture(status_code=200):
    """MockTransport that records requests and answers with status_code."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(status_code)

    return httpx.MockTransport(handler), seen


@pytest.mark.asyncio
async def test_profile_roundtrip(client: AsyncClient, alice_headers):
    missing = await client.get("/api/v1/profile/", headers=alice_headers)
    assert missing.status_code == 404

    saved = await client.put(
        "/api/v1/profile/",
        json={
            "display_name": "Alice L.",
            "venmo_username": "alice-l",
            "payment_sharing_consent": True,
            "webhook_url": "https://hooks.example.com/dinner",
        },
        headers=alice_headers,
    )
    assert saved.status_code == 200
    assert saved.json()["display_name"] == "Alice L."
    assert saved.json()["webhook_url"] == "https://hooks.example.com/dinner"

    partial = await client.put("/api/v1/profile/", json={"zelle_identifier": "a@zelle"}, headers=alice_headers)
    data = partial.json()
    assert data["zelle_identifier"] == "a@zelle"
    assert data["venmo_username"] == "alice-l"
    assert data["payment_sharing_consent"] is True


@pytest.mark.asyncio
async def test_profile_rejects_bad_webhook_url(client: AsyncClient, alice_headers):
    response = await client.put("/api/v1/profile/", json={"webhook_url": "not a url"}, headers=alice_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_participant_payment_info_respects_consent(
    client: AsyncClient, db_session, owner_headers, alice_headers, alice, bob, consenting, fcfs_slot
):
    await consenting(alice, consent=True)
    await consenting(bob, consent=False)
    await request_seat(db_session, fcfs_slot.id, alice.id)
    await request_seat(db_session, fcfs_slot.id, bob.id)

    response = await client.get(f"/api/v1/slots/{fcfs_slot.id}/participants", headers=owner_headers)
    assert response.status_code == 200
    by_name = {p["customer_name"]: p for p in response.json()}
    assert by_name["Alice"]["venmo_username"] == "alice-venmo"
    assert by_name["Bob"]["venmo_username"] is None
    assert by_name["Bob"]["zelle_identifier"] is None

    forbidden = await client.get(f"/api/v1/slots/{fcfs_slot.id}/participants", headers=alice_headers)
    assert forbidden.status_code == 403


@pytest.mark.parametrize(
    "value, expected",
    [(time(19, 30), "7:30 PM"), (time(0, 5), "12:05 AM"), (time(12, 0), "12:00 PM"), (time(9, 0), "9:00 AM")],
)
def test_format_event_time(value, expected):
    assert format_event_time(value) == expected


@pytest.mark.asyncio
async def test_webhook_sends_only_consented_participants(
    db_session, owner, alice, bob, consenting, make_slot
):
    await consenting(owner, webhook_url="https://hooks.example.com/owner")
    await consenting(alice, consent=True)
    await consenting(bob, consent=False)
    slot = await make_slot(total_tables=3)
    await request_seat(db_session, slot.id, alice.id)
    await request_seat(db_session, slot.id, bob.id)

    transport, seen = _capture()
    async with httpx.AsyncClient(transport=transport) as http:
        result = await send_participant_webhook(db_session, slot.id, owner.id, client=http)

    assert result.success is True
    assert result.sent_count == 1
    assert result.excluded_count == 1
    assert result.webhook_status == 200

    payload = seen[0]
    assert payload["event_name"] == slot.name
    assert payload["event_date"] == slot.date.isoformat()
    assert payload["event_time"] == format_event_time(slot.start_time)
    assert payload["participants"] == [
        {
            "name": "Alice",
            "email": "alice@example.com",
            "venmo_username": "alice-venmo",
            "zelle_identifier": "alice@zelle",
        }
    ]


@pytest.mark.asyncio
async def test_webhook_non_2xx_is_reported(db_session, owner, consenting, fcfs_slot):
    await consenting(owner, webhook_url="https://hooks.example.com/owner")

    transport, _ = _capture(status_code=500)
    async with httpx.AsyncClient(transport=transport) as http:
        result = await send_participant_webhook(db_session, fcfs_slot.id, owner.id, client=http)

    assert result.success is False
    assert result.webhook_status == 500
    assert result.sent_count == 0


@pytest.mark.asyncio
async def test_webhook_transport_error(db_session, owner, consenting, fcfs_slot):
    await consenting(owner, webhook_url="https://hooks.example.com/owner")

    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as http:
        with pytest.raises(WebhookDeliveryFailed):
            await send_participant_webhook(db_session, fcfs_slot.id, owner.id, client=http)


@pytest.mark.asyncio
async def test_webhook_requires_url(db_session, owner, fcfs_slot):
    with pytest.raises(WebhookNotConfigured):
        await send_participant_webhook(db_session, fcfs_slot.id, owner.id)


@pytest.mark.asyncio
async def test_webhook_owner_only(db_session, alice, consenting, fcfs_slot):
    await consenting(alice, webhook_url="https://hooks.example.com/alice")
    with pytest.raises(Unauthorized):
        await send_participant_webhook(db_session, fcfs_slot.id, alice.id)


@pytest.mark.asyncio
async def test_webhook_endpoint_without_url(client: AsyncClient, owner_headers, fcfs_slot):
    response = await client.post(f"/api/v1/slots/{fcfs_slot.id}/webhook", headers=owner_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "webhook_not_configured"
