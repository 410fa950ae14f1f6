"""
Outbound participant webhook.

The slot owner pushes the confirmed participant list to the webhook URL stored
in their profile (typically a payment-splitting or spreadsheet automation).
Only participants who consented to sharing payment handles are included; the
rest are counted in `excluded_count`.
"""

from datetime import time
from typing import Optional

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.core.config import get_settings
from slotbook.core.exceptions import WebhookDeliveryFailed, WebhookNotConfigured
from slotbook.core.logging import get_logger
from slotbook.models.booking import Booking, BookingStatus
from slotbook.models.user import UserProfile
from slotbook.schemas.profile import WebhookResult
from slotbook.services import slot_service
from slotbook.services.profile_service import get_profile

logger = get_logger(__name__)
settings = get_settings()


def format_event_time(value: time) -> str:
    """12-hour clock, e.g. 19:30 -> '7:30 PM'."""
    hour = value.hour % 12 or 12
    suffix = "PM" if value.hour >= 12 else "AM"
    return f"{hour}:{value.minute:02d} {suffix}"


async def build_payload(db: AsyncSession, slot) -> tuple[dict, int]:
    """Payload for a slot plus the number of participants left out for lack of consent."""
    result = await db.execute(
        select(Booking, UserProfile)
        .outerjoin(UserProfile, UserProfile.user_id == Booking.user_id)
        .where(Booking.slot_id == slot.id, Booking.status == BookingStatus.CONFIRMED.value)
        .order_by(Booking.created_at.asc(), Booking.id.asc())
    )

    participants = []
    excluded = 0
    for booking, profile in result.all():
        if profile is None or not profile.payment_sharing_consent:
            excluded += 1
            continue
        participants.append(
            {
                "name": booking.customer_name,
                "email": booking.customer_email,
                "venmo_username": profile.venmo_username,
                "zelle_identifier": profile.zelle_identifier,
            }
        )

    payload = {
        "event_name": slot.name,
        "event_date": slot.date.isoformat(),
        "event_time": format_event_time(slot.start_time),
        "participants": participants,
    }
    return payload, excluded


async def send_participant_webhook(
    db: AsyncSession,
    slot_id: int,
    user_id: int,
    client: Optional[httpx.AsyncClient] = None,
) -> WebhookResult:
    """
    POST the slot's consented participants to the owner's webhook URL.

    A non-2xx answer is reported (success=False, webhook_status) rather than
    raised; only transport failures raise WebhookDeliveryFailed.
    """
    slot = await slot_service.get_slot(db, slot_id)
    await slot_service.ensure_can_manage(db, slot, user_id)

    profile = await get_profile(db, user_id)
    if profile is None or not profile.webhook_url:
        raise WebhookNotConfigured("No webhook URL configured. Set one in your profile first.")

    payload, excluded = await build_payload(db, slot)
    url = profile.webhook_url

    try:
        if client is not None:
            response = await client.post(url, json=payload)
        else:
            async with httpx.AsyncClient(timeout=settings.WEBHOOK_TIMEOUT_SECONDS) as owned:
                response = await owned.post(url, json=payload)
    except httpx.HTTPError as e:
        logger.error("webhook_delivery_failed", slot_id=slot_id, error=str(e))
        raise WebhookDeliveryFailed("Could not reach the webhook URL", slot_id=slot_id)

    result = WebhookResult(
        success=response.is_success,
        sent_count=len(payload["participants"]),
        excluded_count=excluded,
        webhook_status=response.status_code,
    )
    logger.info(
        "webhook_sent",
        slot_id=slot_id,
        status=response.status_code,
        sent=result.sent_count,
        excluded=result.excluded_count,
    )
    return result
