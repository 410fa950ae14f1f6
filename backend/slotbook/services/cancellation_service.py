"""
Cancellation coordinator.

Cancelling a confirmed booking is three writes that must land together:
the status change, the ledger release and the waitlist promotion that
immediately re-fills the released table. They run in one transaction with the
slot row locked; a failure anywhere rolls all of them back, so a booking is
never seen cancelled while its table is still counted (or the reverse).
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.core.exceptions import InvalidState, Unauthorized
from slotbook.core.logging import get_logger
from slotbook.core.metrics import record_cancellation
from slotbook.models.booking import Booking, BookingStatus
from slotbook.services import ledger, slot_service, waitlist_service
from slotbook.services.booking_service import booking_slot_id, lock_booking_in_slot
from slotbook.services.notification_service import Notifier, get_notifier
from slotbook.services.waitlist_service import Promotion

logger = get_logger(__name__)


@dataclass
class CancellationResult:
    booking: Booking
    prior_status: BookingStatus
    promotion: Optional[Promotion] = None


async def cancel_booking(
    db: AsyncSession,
    booking_id: int,
    user_id: int,
    notifier: Optional[Notifier] = None,
) -> CancellationResult:
    """
    Cancel a booking. Allowed for the booking holder and the slot owner.

    Raises NotFound for unknown bookings and InvalidState for bookings that are
    already cancelled (never a second ledger release).
    """
    try:
        slot_id = await booking_slot_id(db, booking_id)
        slot = await ledger.lock_slot(db, slot_id)
        # Read under the slot lock; another cancellation may have won the race
        booking = await lock_booking_in_slot(db, booking_id, slot_id)

        if booking.user_id != user_id and not await slot_service.can_manage(db, slot, user_id):
            raise Unauthorized("You can only cancel your own bookings")

        if booking.status == BookingStatus.CANCELLED.value:
            logger.error("cancel_already_cancelled", booking_id=booking_id, slot_id=slot.id)
            raise InvalidState("Booking is already cancelled", booking_id=booking_id)

        prior_status = BookingStatus(booking.status)
        booking.status = BookingStatus.CANCELLED.value
        await db.flush()

        promotion = None
        if prior_status == BookingStatus.CONFIRMED:
            await ledger.decrement(db, slot.id)
            promotion = await waitlist_service.promote_next(db, slot.id)

        await db.refresh(booking)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    record_cancellation(prior_status.value)
    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        slot_id=booking.slot_id,
        cancelled_by=user_id,
        prior_status=prior_status.value,
        promoted_booking_id=promotion.booking.id if promotion else None,
    )

    if promotion is not None:
        (notifier or get_notifier()).emit(promotion.notification())

    return CancellationResult(booking=booking, prior_status=prior_status, promotion=promotion)
