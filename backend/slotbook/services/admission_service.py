"""
Admission engine: the single entry point for seat requests.

Flow (one transaction):
  1. Lock the slot row
  2. Reject a second active booking by the same requester (DuplicateBooking)
  3. Hand the slot to the policy for its booking mode:
       fcfs    -> ledger.increment or SlotFull
       lottery -> pending entry, ledger untouched
  4. Insert the booking and commit
  5. After commit, emit the confirmation notification (fire-and-forget)

The duplicate check in step 2 covers the common case; two truly concurrent
requests from the same requester are caught by the partial unique index and
surface as DuplicateBooking after a full rollback (including any ledger claim).
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.core.exceptions import BookingError, DuplicateBooking
from slotbook.core.logging import get_logger
from slotbook.core.metrics import booking_latency, record_admission
from slotbook.models.booking import Booking
from slotbook.services import ledger
from slotbook.services.booking_service import find_active_booking
from slotbook.services.notification_service import BookingType, NotificationEvent, Notifier, get_notifier
from slotbook.services.profile_service import resolve_contact
from slotbook.services.strategy_factory import get_admission_policy

logger = get_logger(__name__)


async def request_seat(
    db: AsyncSession,
    slot_id: int,
    user_id: Optional[int],
    party_size: int = 1,
    customer_name: Optional[str] = None,
    customer_email: Optional[str] = None,
    dietary_restrictions: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> Booking:
    """
    Request a table in a slot for an authenticated user (or a guest when user_id is None).

    Returns the new booking, `confirmed` (fcfs) or `pending_lottery` (lottery).
    Raises SlotFull, DuplicateBooking or NotFound.
    """
    with booking_latency.time():
        mode = None
        try:
            name, email = await resolve_contact(db, user_id, customer_name, customer_email)
            slot = await ledger.lock_slot(db, slot_id)
            mode = slot.mode

            existing = await find_active_booking(db, slot_id, user_id, email)
            if existing is not None:
                raise DuplicateBooking(
                    "You already have a booking for this slot",
                    booking_id=existing.id,
                    status=existing.status,
                )

            policy = get_admission_policy(mode)
            status = await policy.admit(db, slot)

            booking = Booking(
                slot_id=slot_id,
                user_id=user_id,
                customer_name=name,
                customer_email=email,
                party_size=party_size,
                dietary_restrictions=dietary_restrictions,
                status=status.value,
            )
            db.add(booking)
            await db.flush()
            await db.refresh(booking)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            record_admission(mode.value if mode else "unknown", "duplicate")
            logger.info("booking_duplicate_race", slot_id=slot_id, user_id=user_id)
            raise DuplicateBooking("You already have a booking for this slot")
        except BookingError as e:
            await db.rollback()
            record_admission(mode.value if mode else "unknown", e.code)
            logger.info("booking_rejected", slot_id=slot_id, user_id=user_id, reason=e.code)
            raise
        except Exception:
            await db.rollback()
            raise

    record_admission(mode.value, status.value)
    logger.info(
        "booking_created",
        booking_id=booking.id,
        slot_id=slot_id,
        user_id=user_id,
        status=booking.status,
        mode=mode.value,
        party_size=party_size,
    )

    if policy.notifies_on_admit:
        (notifier or get_notifier()).emit(
            NotificationEvent(
                slot_id=slot_id,
                customer_name=booking.customer_name,
                customer_email=booking.customer_email,
                party_size=booking.party_size,
                booking_type=BookingType.BOOKING,
            )
        )
    return booking
