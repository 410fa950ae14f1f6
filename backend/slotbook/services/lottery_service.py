"""
Lottery resolver for slots in lottery mode.

Requests on a lottery slot land as `pending_lottery` bookings without touching
the ledger. The owner later draws winners: the slot row stays locked for the
whole draw, winners are sampled with SystemRandom, and the ledger is charged
once for the whole batch. Entries that are no longer pending (already
confirmed, cancelled) are never drawn.
"""

import random
from dataclasses import dataclass, field
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.core.config import get_settings
from slotbook.core.exceptions import InvalidState, NoSpotsAvailable
from slotbook.core.logging import get_logger
from slotbook.core.metrics import record_lottery_draw
from slotbook.models.booking import Booking, BookingStatus
from slotbook.services import ledger, slot_service
from slotbook.services.booking_service import booking_slot_id, lock_booking_in_slot
from slotbook.services.notification_service import BookingType, NotificationEvent, Notifier, get_notifier

logger = get_logger(__name__)
settings = get_settings()

_rng = random.SystemRandom()


@dataclass
class DrawResult:
    slot_id: int
    winners: list[Booking] = field(default_factory=list)
    rejected: list[Booking] = field(default_factory=list)

    @property
    def winners_count(self) -> int:
        return len(self.winners)


async def _pending_candidates(
    db: AsyncSession, slot_id: int, entry_ids: Optional[Sequence[int]]
) -> list[Booking]:
    query = select(Booking).where(
        Booking.slot_id == slot_id,
        Booking.status == BookingStatus.PENDING_LOTTERY.value,
    )
    if entry_ids is not None:
        query = query.where(Booking.id.in_(list(entry_ids)))
    result = await db.execute(
        query.order_by(Booking.id.asc())
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def draw_winners(
    db: AsyncSession,
    slot_id: int,
    user_id: int,
    entry_ids: Optional[Sequence[int]] = None,
    winners_count: int = 1,
    reject_others: bool = True,
    notifier: Optional[Notifier] = None,
) -> DrawResult:
    """
    Confirm a random subset of the pending entries, up to the tables left.

    Raises NoSpotsAvailable (nothing changes) when no entry can be confirmed:
    the slot is full, there are no pending candidates, or winners_count is 0.
    """
    requested = min(winners_count, settings.LOTTERY_MAX_WINNERS_PER_DRAW)
    try:
        slot = await ledger.lock_slot(db, slot_id)
        await slot_service.ensure_can_manage(db, slot, user_id)

        available = ledger.capacity_remaining(slot)
        candidates = await _pending_candidates(db, slot_id, entry_ids)
        actual = min(requested, len(candidates), available)
        if actual <= 0:
            raise NoSpotsAvailable(
                "No tables left to draw winners for" if available <= 0 else "No pending entries to draw",
                slot_id=slot_id,
                available=available,
                candidates=len(candidates),
            )

        winners = _rng.sample(candidates, actual)
        winner_ids = {b.id for b in winners}
        rejected = []
        for booking in candidates:
            if booking.id in winner_ids:
                booking.status = BookingStatus.CONFIRMED.value
            elif reject_others:
                booking.status = BookingStatus.CANCELLED.value
                rejected.append(booking)

        await db.flush()
        await ledger.increment(db, slot_id, actual)
        for booking in candidates:
            await db.refresh(booking)
        await db.commit()
    except NoSpotsAvailable:
        await db.rollback()
        record_lottery_draw(0)
        logger.info("lottery_no_spots", slot_id=slot_id, requested=requested)
        raise
    except Exception:
        await db.rollback()
        raise

    record_lottery_draw(actual)
    logger.info(
        "lottery_drawn",
        slot_id=slot_id,
        drawn_by=user_id,
        requested=winners_count,
        winners=actual,
        rejected=len(rejected),
        candidates=len(candidates),
    )

    notifier = notifier or get_notifier()
    for booking in winners:
        notifier.emit(
            NotificationEvent(
                slot_id=slot_id,
                customer_name=booking.customer_name,
                customer_email=booking.customer_email,
                party_size=booking.party_size,
                booking_type=BookingType.BOOKING,
            )
        )

    return DrawResult(slot_id=slot_id, winners=winners, rejected=rejected)


async def confirm_lottery_winner(
    db: AsyncSession,
    booking_id: int,
    user_id: int,
    notifier: Optional[Notifier] = None,
) -> Booking:
    """Hand-pick a single pending entry as a winner."""
    try:
        slot_id = await booking_slot_id(db, booking_id)
        await ledger.lock_slot(db, slot_id)
        booking = await lock_booking_in_slot(db, booking_id, slot_id)
        if booking.status != BookingStatus.PENDING_LOTTERY.value:
            raise InvalidState(
                f"Booking is {booking.status}, not pending a lottery", booking_id=booking_id
            )
    except Exception:
        await db.rollback()
        raise

    # Same transaction; draw_winners re-locks the slot and re-checks the status
    result = await draw_winners(
        db,
        slot_id,
        user_id,
        entry_ids=[booking_id],
        winners_count=1,
        reject_others=False,
        notifier=notifier,
    )
    return result.winners[0]


async def reject_lottery_entry(db: AsyncSession, booking_id: int, user_id: int) -> Booking:
    """Cancel a pending entry. The ledger was never charged, so it is not touched."""
    try:
        slot_id = await booking_slot_id(db, booking_id)
        slot = await ledger.lock_slot(db, slot_id)
        await slot_service.ensure_can_manage(db, slot, user_id)

        booking = await lock_booking_in_slot(db, booking_id, slot_id)
        if booking.status != BookingStatus.PENDING_LOTTERY.value:
            raise InvalidState(
                f"Booking is {booking.status}, not pending a lottery", booking_id=booking_id
            )

        booking.status = BookingStatus.CANCELLED.value
        await db.flush()
        await db.refresh(booking)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("lottery_entry_rejected", booking_id=booking_id, slot_id=booking.slot_id, rejected_by=user_id)
    return booking


async def get_pending_entries(db: AsyncSession, slot_id: int, user_id: int) -> list[Booking]:
    """Owner view of the lottery pool, oldest first."""
    slot = await slot_service.get_slot(db, slot_id)
    await slot_service.ensure_can_manage(db, slot, user_id)

    result = await db.execute(
        select(Booking)
        .where(
            Booking.slot_id == slot_id,
            Booking.status == BookingStatus.PENDING_LOTTERY.value,
        )
        .order_by(Booking.created_at.asc(), Booking.id.asc())
    )
    return list(result.scalars().all())
