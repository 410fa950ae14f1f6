"""
Waitlist sequencer: FIFO queue of requests for a full slot.

Positions are assigned as max(position) + 1 while the slot row is locked, so
concurrent joins on one slot cannot collide (a unique (slot_id, position)
constraint backs this up). The slot keeps a high-water mark so a position
freed by the last entry leaving is not handed out again. Positions are never
renumbered; rank for display is computed by sorting.

promote_next() is not a user operation. It runs inside the cancellation
transaction, right after a confirmed seat has been released.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.core.exceptions import DuplicateBooking, NotFound, Unauthorized, WaitlistDisabled
from slotbook.core.logging import get_logger
from slotbook.core.metrics import waitlist_joins, waitlist_promotions
from slotbook.models.booking import Booking, BookingStatus
from slotbook.models.slot import Slot
from slotbook.models.waitlist import WaitlistEntry
from slotbook.services import ledger, slot_service
from slotbook.services.booking_service import find_active_booking
from slotbook.services.notification_service import BookingType, NotificationEvent, Notifier, get_notifier
from slotbook.services.profile_service import resolve_contact

logger = get_logger(__name__)


@dataclass
class Promotion:
    """A waitlist entry turned into a confirmed booking."""

    entry_id: int
    position: int
    booking: Booking

    def notification(self) -> NotificationEvent:
        return NotificationEvent(
            slot_id=self.booking.slot_id,
            customer_name=self.booking.customer_name,
            customer_email=self.booking.customer_email,
            party_size=self.booking.party_size,
            booking_type=BookingType.PROMOTION,
        )


async def next_position(db: AsyncSession, slot: Slot) -> int:
    """Reserve the next position for a slot. Call with the slot row locked."""
    result = await db.execute(
        select(func.max(WaitlistEntry.position)).where(WaitlistEntry.slot_id == slot.id)
    )
    position = max(result.scalar() or 0, slot.last_waitlist_position or 0) + 1
    slot.last_waitlist_position = position
    return position


async def join(
    db: AsyncSession,
    slot_id: int,
    user_id: int,
    party_size: int = 1,
    customer_name: Optional[str] = None,
    customer_email: Optional[str] = None,
    customer_phone: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> WaitlistEntry:
    """
    Queue the requester on a slot's waitlist.
    No capacity check: the waitlist is unbounded.
    """
    notifier = notifier or get_notifier()
    try:
        name, email = await resolve_contact(db, user_id, customer_name, customer_email)
        slot = await ledger.lock_slot(db, slot_id)
        if not slot.waitlist_enabled:
            raise WaitlistDisabled("This slot does not have a waitlist", slot_id=slot_id)

        if await find_active_booking(db, slot_id, user_id) is not None:
            raise DuplicateBooking("You already have a booking for this slot", slot_id=slot_id)

        queued = await db.execute(
            select(WaitlistEntry.id).where(
                WaitlistEntry.slot_id == slot_id,
                WaitlistEntry.user_id == user_id,
            )
        )
        if queued.first() is not None:
            raise DuplicateBooking("You are already on the waitlist for this slot", slot_id=slot_id)

        entry = WaitlistEntry(
            slot_id=slot_id,
            user_id=user_id,
            customer_name=name,
            customer_email=email,
            customer_phone=customer_phone,
            party_size=party_size,
            position=await next_position(db, slot),
            # The join notification goes out right after this commit
            notified_at=datetime.now(timezone.utc) if notifier.enabled else None,
        )
        db.add(entry)
        await db.flush()
        await db.refresh(entry)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateBooking("You are already on the waitlist for this slot", slot_id=slot_id)
    except Exception:
        await db.rollback()
        raise

    waitlist_joins.inc()
    logger.info(
        "waitlist_joined",
        entry_id=entry.id,
        slot_id=slot_id,
        user_id=user_id,
        position=entry.position,
    )

    notifier.emit(
        NotificationEvent(
            slot_id=slot_id,
            customer_name=entry.customer_name,
            customer_email=entry.customer_email,
            party_size=entry.party_size,
            booking_type=BookingType.WAITLIST,
        )
    )
    return entry


async def leave(db: AsyncSession, entry_id: int, user_id: int) -> None:
    """Remove an entry. Allowed for the requester and the slot owner. No renumbering."""
    try:
        entry = await db.get(WaitlistEntry, entry_id)
        if entry is None:
            raise NotFound("Waitlist entry", entry_id)

        if entry.user_id != user_id:
            slot = await slot_service.get_slot(db, entry.slot_id)
            if not await slot_service.can_manage(db, slot, user_id):
                raise Unauthorized("You can only leave your own waitlist entries")

        slot_id, position = entry.slot_id, entry.position
        await db.delete(entry)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("waitlist_left", entry_id=entry_id, slot_id=slot_id, position=position)


async def promote_next(db: AsyncSession, slot_id: int) -> Optional[Promotion]:
    """
    Turn the earliest waitlist entry into a confirmed booking and claim its table.

    Must run inside the caller's transaction with the slot row locked; does not
    commit. Entries whose requester already holds an active booking for the
    slot are discarded and the next entry is tried. Returns None when the
    queue is empty.
    """
    while True:
        result = await db.execute(
            select(WaitlistEntry)
            .where(WaitlistEntry.slot_id == slot_id)
            .order_by(WaitlistEntry.position.asc())
            .limit(1)
            .with_for_update()
        )
        entry = result.scalar_one_or_none()
        if entry is None:
            logger.debug("waitlist_empty", slot_id=slot_id)
            return None

        entry_id, position, requester_id = entry.id, entry.position, entry.user_id
        contact = (entry.customer_name, entry.customer_email, entry.party_size)
        await db.delete(entry)
        await db.flush()

        if await find_active_booking(db, slot_id, requester_id) is not None:
            logger.warning(
                "waitlist_entry_discarded",
                entry_id=entry_id,
                slot_id=slot_id,
                reason="requester_already_booked",
            )
            continue

        await ledger.increment(db, slot_id)
        booking = Booking(
            slot_id=slot_id,
            user_id=requester_id,
            customer_name=contact[0],
            customer_email=contact[1],
            party_size=contact[2],
            status=BookingStatus.CONFIRMED.value,
        )
        db.add(booking)
        await db.flush()
        await db.refresh(booking)

        waitlist_promotions.inc()
        logger.info(
            "waitlist_promoted",
            entry_id=entry_id,
            booking_id=booking.id,
            slot_id=slot_id,
            position=position,
        )
        return Promotion(entry_id=entry_id, position=position, booking=booking)


async def list_entries(db: AsyncSession, slot_id: int, user_id: int) -> list[WaitlistEntry]:
    """Owner view of the queue in FIFO order, with a dense 1-based rank."""
    slot = await slot_service.get_slot(db, slot_id)
    await slot_service.ensure_can_manage(db, slot, user_id)

    result = await db.execute(
        select(WaitlistEntry)
        .where(WaitlistEntry.slot_id == slot_id)
        .order_by(WaitlistEntry.position.asc())
    )
    entries = list(result.scalars().all())
    for rank, entry in enumerate(entries, start=1):
        entry.rank = rank
    return entries


async def get_user_entries(db: AsyncSession, user_id: int) -> list[WaitlistEntry]:
    """A requester's waitlist entries, each with its current rank in its slot's queue."""
    result = await db.execute(
        select(WaitlistEntry)
        .where(WaitlistEntry.user_id == user_id)
        .order_by(WaitlistEntry.created_at.desc(), WaitlistEntry.id.desc())
    )
    entries = list(result.scalars().all())
    for entry in entries:
        entry.rank = await rank_of(db, entry)
    return entries


async def rank_of(db: AsyncSession, entry: WaitlistEntry) -> int:
    """1-based place of an entry in its slot's queue."""
    ahead = await db.execute(
        select(func.count(WaitlistEntry.id)).where(
            WaitlistEntry.slot_id == entry.slot_id,
            WaitlistEntry.position < entry.position,
        )
    )
    return ahead.scalar() + 1
