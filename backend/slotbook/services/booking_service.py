"""
Booking lookups shared by the admission, lottery and cancellation services,
plus the read-side queries behind "my bookings" and the owner's participant list.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.core.exceptions import NotFound
from slotbook.models.booking import Booking, BookingStatus
from slotbook.services import slot_service


async def find_active_booking(
    db: AsyncSession,
    slot_id: int,
    user_id: Optional[int],
    customer_email: Optional[str] = None,
) -> Optional[Booking]:
    """The requester's non-cancelled booking for a slot, if any. Guests are keyed by email."""
    query = select(Booking).where(
        Booking.slot_id == slot_id,
        Booking.status != BookingStatus.CANCELLED.value,
    )
    if user_id is not None:
        query = query.where(Booking.user_id == user_id)
    else:
        query = query.where(Booking.user_id.is_(None), Booking.customer_email == customer_email)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none()


async def booking_slot_id(db: AsyncSession, booking_id: int) -> int:
    """
    Unlocked read of the slot a booking belongs to.

    Writers lock the slot row before any booking row; callers take this id to
    lock_slot first and then lock_booking_in_slot.
    """
    result = await db.execute(select(Booking.slot_id).where(Booking.id == booking_id))
    slot_id = result.scalar_one_or_none()
    if slot_id is None:
        raise NotFound("Booking", booking_id)
    return slot_id


async def lock_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFound("Booking", booking_id)
    return booking


async def lock_booking_in_slot(db: AsyncSession, booking_id: int, slot_id: int) -> Booking:
    """lock_booking, also failing when the booking was detached from the slot meanwhile."""
    booking = await lock_booking(db, booking_id)
    if booking.slot_id != slot_id:
        raise NotFound("Booking", booking_id)
    return booking


async def get_user_bookings(db: AsyncSession, user_id: int) -> list[Booking]:
    """Get all bookings for a user."""
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())


async def get_slot_bookings(
    db: AsyncSession,
    slot_id: int,
    user_id: int,
    status: Optional[BookingStatus] = None,
) -> list[Booking]:
    """Owner view of a slot's bookings, oldest first."""
    slot = await slot_service.get_slot(db, slot_id)
    await slot_service.ensure_can_manage(db, slot, user_id)

    query = select(Booking).where(Booking.slot_id == slot_id)
    if status is not None:
        query = query.where(Booking.status == status.value)
    result = await db.execute(query.order_by(Booking.created_at.asc(), Booking.id.asc()))
    return list(result.scalars().all())
