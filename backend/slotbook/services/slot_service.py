"""
Slot service: owner CRUD, the calendar read models (month availability,
upcoming slots with host names) and the authorization check shared by
owner-only operations.
"""

import calendar
from datetime import date, time
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.core.exceptions import InvalidRequest, NotFound, Unauthorized
from slotbook.core.logging import get_logger
from slotbook.models.booking import Booking, BookingStatus
from slotbook.models.slot import Slot
from slotbook.models.user import AppRole, UserProfile
from slotbook.models.waitlist import WaitlistEntry
from slotbook.schemas.slot import SlotCreate, SlotUpdate
from slotbook.services import ledger
from slotbook.services.auth_service import has_role

logger = get_logger(__name__)

# Start-time windows used by the listing filter
MEAL_TIME_RANGES = {
    "breakfast": (time(6, 0), time(11, 0)),
    "lunch": (time(11, 0), time(15, 0)),
    "dinner": (time(17, 0), time(23, 0)),
}


async def can_manage(db: AsyncSession, slot: Slot, user_id: Optional[int]) -> bool:
    if user_id is None:
        return False
    return slot.owner_id == user_id or await has_role(db, user_id, AppRole.ADMIN)


async def ensure_can_manage(db: AsyncSession, slot: Slot, user_id: Optional[int]) -> None:
    """Owner-only gate (admins pass too). Raises Unauthorized."""
    if not await can_manage(db, slot, user_id):
        logger.warning("owner_check_failed", slot_id=slot.id, user_id=user_id)
        raise Unauthorized("Only the slot owner can do this", slot_id=slot.id)


async def create_slot(db: AsyncSession, slot_data: SlotCreate, owner_id: int) -> Slot:
    """Create a slot with an empty ledger."""
    slot = Slot(
        name=slot_data.name,
        description=slot_data.description,
        date=slot_data.date,
        start_time=slot_data.start_time,
        end_time=slot_data.end_time,
        total_tables=slot_data.total_tables,
        booked_tables=0,
        booking_mode=slot_data.booking_mode.value,
        waitlist_enabled=slot_data.waitlist_enabled,
        owner_id=owner_id,
    )
    db.add(slot)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise InvalidRequest("You already have a slot at this date and time")
    await db.refresh(slot)
    await db.commit()

    logger.info(
        "slot_created",
        slot_id=slot.id,
        date=str(slot.date),
        tables=slot.total_tables,
        mode=slot.booking_mode,
    )
    return slot


async def get_slot(db: AsyncSession, slot_id: int) -> Slot:
    """Get a single slot by ID."""
    result = await db.execute(select(Slot).where(Slot.id == slot_id))
    slot = result.scalar_one_or_none()
    if not slot:
        raise NotFound("Slot", slot_id)
    return slot


async def list_slots(
    db: AsyncSession,
    on_date: Optional[date] = None,
    meal_time: Optional[str] = None,
    from_date: Optional[date] = None,
    owner_id: Optional[int] = None,
) -> tuple[list[Slot], int]:
    """List slots ordered by date and start time, optionally filtered."""
    query = select(Slot)

    if on_date is not None:
        query = query.where(Slot.date == on_date)
    if from_date is not None:
        query = query.where(Slot.date >= from_date)
    if owner_id is not None:
        query = query.where(Slot.owner_id == owner_id)
    if meal_time in MEAL_TIME_RANGES:
        start, end = MEAL_TIME_RANGES[meal_time]
        query = query.where(Slot.start_time >= start, Slot.start_time <= end)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    result = await db.execute(query.order_by(Slot.date.asc(), Slot.start_time.asc()))
    return list(result.scalars().all()), total


async def month_availability(db: AsyncSession, year: int, month: int) -> dict[date, int]:
    """Per date in the month, how many slots still have a free table. Dates with none are omitted."""
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    result = await db.execute(
        select(Slot.date, func.count(Slot.id))
        .where(
            Slot.date >= first,
            Slot.date <= last,
            Slot.booked_tables < Slot.total_tables,
        )
        .group_by(Slot.date)
        .order_by(Slot.date.asc())
    )
    return {day: count for day, count in result.all()}


async def upcoming_slots(
    db: AsyncSession, limit: int = 10, today: Optional[date] = None
) -> list[tuple[Slot, Optional[str]]]:
    """Slots from today on, soonest first, each with the host's display name (None without a profile)."""
    today = today or date.today()
    result = await db.execute(
        select(Slot, UserProfile.display_name)
        .outerjoin(UserProfile, UserProfile.user_id == Slot.owner_id)
        .where(Slot.date >= today)
        .order_by(Slot.date.asc(), Slot.start_time.asc(), Slot.id.asc())
        .limit(limit)
    )
    return [(slot, host_name) for slot, host_name in result.all()]


async def update_slot(db: AsyncSession, slot_id: int, changes: SlotUpdate, user_id: int) -> Slot:
    """
    Owner edit. Capacity goes through the ledger so it can never drop below
    booked_tables, even if a booking lands between the form load and the save.
    """
    try:
        slot = await ledger.lock_slot(db, slot_id)
        await ensure_can_manage(db, slot, user_id)

        fields = changes.model_dump(exclude_unset=True)
        total_tables = fields.pop("total_tables", None)
        if total_tables is not None and total_tables != slot.total_tables:
            await ledger.resize(db, slot.id, total_tables)

        if "booking_mode" in fields:
            mode = fields.pop("booking_mode")
            if mode is not None:
                slot.booking_mode = mode.value

        for key, value in fields.items():
            if value is None and key in ("name", "start_time", "waitlist_enabled"):
                continue
            setattr(slot, key, value)

        if slot.end_time is not None and slot.end_time <= slot.start_time:
            raise InvalidRequest("end_time must be after start_time")

        await db.flush()
        await db.refresh(slot)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("slot_updated", slot_id=slot.id, fields=sorted(changes.model_dump(exclude_unset=True)))
    return slot


async def delete_slot(db: AsyncSession, slot_id: int, user_id: int) -> dict:
    """
    Delete a slot and everything queued on it in one transaction:
    active bookings are cancelled (and detached), waitlist entries removed.
    """
    try:
        slot = await ledger.lock_slot(db, slot_id)
        await ensure_can_manage(db, slot, user_id)

        cancelled = await db.execute(
            update(Booking)
            .where(Booking.slot_id == slot_id, Booking.status != BookingStatus.CANCELLED.value)
            .values(status=BookingStatus.CANCELLED.value)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            update(Booking)
            .where(Booking.slot_id == slot_id)
            .values(slot_id=None)
            .execution_options(synchronize_session=False)
        )
        removed = await db.execute(
            delete(WaitlistEntry)
            .where(WaitlistEntry.slot_id == slot_id)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(Slot).where(Slot.id == slot_id).execution_options(synchronize_session=False)
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    # Drop stale instances the bulk statements bypassed
    db.expunge_all()

    summary = {
        "slot_id": slot_id,
        "bookings_cancelled": cancelled.rowcount,
        "waitlist_removed": removed.rowcount,
    }
    logger.info("slot_deleted", **summary)
    return summary
