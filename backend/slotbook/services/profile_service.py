"""
Profile service: display name and payment handles.

The profile never influences admission. It pre-fills contact details on
bookings and waitlist entries, and feeds the owner's participant exports.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.core.exceptions import InvalidRequest, NotFound
from slotbook.core.logging import get_logger
from slotbook.models.booking import Booking, BookingStatus
from slotbook.models.user import User, UserProfile
from slotbook.schemas.profile import ParticipantPaymentInfo, ProfileUpdate
from slotbook.services import slot_service

logger = get_logger(__name__)


async def get_profile(db: AsyncSession, user_id: int) -> Optional[UserProfile]:
    result = await db.execute(select(UserProfile).where(UserProfile.user_id == user_id))
    return result.scalar_one_or_none()


async def upsert_profile(db: AsyncSession, user_id: int, changes: ProfileUpdate) -> UserProfile:
    profile = await get_profile(db, user_id)
    if profile is None:
        profile = UserProfile(user_id=user_id, payment_sharing_consent=False)
        db.add(profile)

    for key, value in changes.model_dump(exclude_unset=True).items():
        if key == "webhook_url" and value is not None:
            value = str(value)
        if key == "payment_sharing_consent" and value is None:
            continue
        setattr(profile, key, value)

    await db.flush()
    await db.refresh(profile)
    await db.commit()
    logger.info("profile_updated", user_id=user_id)
    return profile


async def resolve_contact(
    db: AsyncSession,
    user_id: Optional[int],
    customer_name: Optional[str],
    customer_email: Optional[str],
) -> tuple[str, str]:
    """
    Fill missing contact fields from the identity and profile collaborators:
    name falls back to display name then username, email to the account email.
    """
    if user_id is None:
        if not customer_name or not customer_email:
            raise InvalidRequest("Guest bookings need a name and an email")
        return customer_name, customer_email.lower()

    if customer_name and customer_email:
        return customer_name, customer_email.lower()

    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User", user_id)

    name = customer_name
    if not name:
        profile = await get_profile(db, user_id)
        name = (profile.display_name if profile and profile.display_name else None) or user.username
    email = (customer_email or user.email).lower()
    return name, email


async def get_participant_payment_info(
    db: AsyncSession, slot_id: int, user_id: int
) -> list[ParticipantPaymentInfo]:
    """
    Owner-only list of confirmed participants. Payment handles are shown only
    for participants who consented to sharing them.
    """
    slot = await slot_service.get_slot(db, slot_id)
    await slot_service.ensure_can_manage(db, slot, user_id)

    result = await db.execute(
        select(Booking, UserProfile)
        .outerjoin(UserProfile, UserProfile.user_id == Booking.user_id)
        .where(Booking.slot_id == slot_id, Booking.status == BookingStatus.CONFIRMED.value)
        .order_by(Booking.created_at.asc(), Booking.id.asc())
    )

    participants = []
    for booking, profile in result.all():
        consented = bool(profile and profile.payment_sharing_consent)
        participants.append(
            ParticipantPaymentInfo(
                booking_id=booking.id,
                customer_name=booking.customer_name,
                customer_email=booking.customer_email,
                party_size=booking.party_size,
                dietary_restrictions=booking.dietary_restrictions,
                venmo_username=profile.venmo_username if consented else None,
                zelle_identifier=profile.zelle_identifier if consented else None,
            )
        )
    return participants
