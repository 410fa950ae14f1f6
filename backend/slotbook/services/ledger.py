"""
Capacity ledger: the authoritative (total_tables, booked_tables) pair per slot.

CONCURRENCY STRATEGY: Row lock + conditional UPDATE
===================================================

Problem:
  Two requests read booked_tables=1 of total_tables=2, both pass an
  application-level check, both write booked_tables=2. One seat was sold twice.

Solution:
  1. Every mutating operation first locks the slot row
     (SELECT ... FOR UPDATE; BEGIN IMMEDIATE on SQLite, see slotbook.db.session)
     so checks and writes inside one transaction see a stable row.
  2. The write itself is guarded in SQL, never computed from a value read earlier:
       UPDATE slots SET booked_tables = booked_tables + :n, version = version + 1
       WHERE id = :slot_id AND booked_tables + :n <= total_tables
     rowcount == 0 means the guard rejected the write.
  3. CHECK constraints on the table are the final safety net.

None of these functions commit. Callers compose them with booking/waitlist
writes and commit (or roll back) the whole unit.
"""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.core.exceptions import CapacityExceeded, InvalidState, NotFound
from slotbook.core.logging import get_logger
from slotbook.core.metrics import record_ledger_conflict
from slotbook.models.slot import Slot

logger = get_logger(__name__)

# One table per booking regardless of party size
TABLES_PER_BOOKING = 1


async def lock_slot(db: AsyncSession, slot_id: int) -> Slot:
    """Load the slot row for update. Raises NotFound."""
    result = await db.execute(
        select(Slot).where(Slot.id == slot_id).with_for_update().execution_options(populate_existing=True)
    )
    slot = result.scalar_one_or_none()
    if slot is None:
        raise NotFound("Slot", slot_id)
    return slot


async def _slot_exists(db: AsyncSession, slot_id: int) -> bool:
    result = await db.execute(select(Slot.id).where(Slot.id == slot_id))
    return result.scalar_one_or_none() is not None


async def _refresh(db: AsyncSession, slot_id: int) -> None:
    # Keep any Slot instance already in the session in step with the row
    slot = await db.get(Slot, slot_id)
    if slot is not None:
        await db.refresh(slot)


async def increment(db: AsyncSession, slot_id: int, amount: int = TABLES_PER_BOOKING) -> None:
    """Claim `amount` tables. Raises CapacityExceeded when they are not free."""
    if amount <= 0:
        raise ValueError("amount must be positive")

    result = await db.execute(
        update(Slot)
        .where(
            Slot.id == slot_id,
            Slot.booked_tables + amount <= Slot.total_tables,
        )
        .values(
            booked_tables=Slot.booked_tables + amount,
            version=Slot.version + 1,
        )
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        if not await _slot_exists(db, slot_id):
            raise NotFound("Slot", slot_id)
        record_ledger_conflict("increment")
        logger.info("ledger_increment_rejected", slot_id=slot_id, amount=amount)
        raise CapacityExceeded(
            f"Not enough tables left for {amount} more booking(s)", slot_id=slot_id, amount=amount
        )

    await _refresh(db, slot_id)
    logger.debug("ledger_incremented", slot_id=slot_id, amount=amount)


async def decrement(db: AsyncSession, slot_id: int, amount: int = TABLES_PER_BOOKING) -> None:
    """Release `amount` tables. Going below zero is a bookkeeping bug: InvalidState."""
    if amount <= 0:
        raise ValueError("amount must be positive")

    result = await db.execute(
        update(Slot)
        .where(
            Slot.id == slot_id,
            Slot.booked_tables - amount >= 0,
        )
        .values(
            booked_tables=Slot.booked_tables - amount,
            version=Slot.version + 1,
        )
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        if not await _slot_exists(db, slot_id):
            raise NotFound("Slot", slot_id)
        record_ledger_conflict("decrement")
        logger.error("ledger_underflow", slot_id=slot_id, amount=amount)
        raise InvalidState(
            "Ledger would go negative; booked tables are out of sync", slot_id=slot_id, amount=amount
        )

    await _refresh(db, slot_id)
    logger.debug("ledger_decremented", slot_id=slot_id, amount=amount)


async def resize(db: AsyncSession, slot_id: int, total_tables: int) -> None:
    """Change capacity without ever dropping it below the tables already booked."""
    if total_tables < 1:
        raise ValueError("total_tables must be at least 1")

    result = await db.execute(
        update(Slot)
        .where(
            Slot.id == slot_id,
            Slot.booked_tables <= total_tables,
        )
        .values(
            total_tables=total_tables,
            version=Slot.version + 1,
        )
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        if not await _slot_exists(db, slot_id):
            raise NotFound("Slot", slot_id)
        record_ledger_conflict("resize")
        raise InvalidState(
            "Cannot reduce tables below the number already booked",
            slot_id=slot_id,
            total_tables=total_tables,
        )

    await _refresh(db, slot_id)


def capacity_remaining(slot: Slot) -> int:
    """Display value / optimistic pre-check only; increment() is authoritative."""
    return max(slot.total_tables - slot.booked_tables, 0)
