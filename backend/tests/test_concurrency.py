"""
Concurrency tests: many requests against one slot, each in its own session.

Every simulated request gets an independent session (its own connection and
transaction), as separate API workers would. The shared test session is
committed before each burst so it holds no lock while the burst runs.
"""

import asyncio

import pytest
from sqlalchemy import func, select

from slotbook.core.exceptions import DuplicateBooking, InvalidState, NoSpotsAvailable, SlotFull
from slotbook.models.booking import Booking, BookingStatus
from slotbook.models.slot import BookingMode, Slot
from slotbook.models.waitlist import WaitlistEntry
from slotbook.services import booking_service, ledger, lottery_service, waitlist_service
from slotbook.services.admission_service import request_seat
from slotbook.services.cancellation_service import cancel_booking


async def _users(make_user, prefix, n):
    return [(await make_user(f"{prefix}{i}")).id for i in range(n)]


async def _ledger_state(session_factory, slot_id):
    async with session_factory() as session:
        booked = (await session.execute(select(Slot.booked_tables).where(Slot.id == slot_id))).scalar()
        confirmed = (
            await session.execute(
                select(func.count(Booking.id)).where(
                    Booking.slot_id == slot_id, Booking.status == BookingStatus.CONFIRMED.value
                )
            )
        ).scalar()
    return booked, confirmed


@pytest.mark.asyncio
async def test_concurrent_fcfs_requests_never_overbook(db_session, session_factory, make_user, make_slot):
    """Twelve requesters, three tables: exactly three confirmations."""
    slot = await make_slot(total_tables=3)
    slot_id = slot.id
    user_ids = await _users(make_user, "racer", 12)
    await db_session.commit()

    async def attempt(user_id):
        async with session_factory() as session:
            try:
                await request_seat(session, slot_id, user_id)
                return "confirmed"
            except SlotFull:
                return "slot_full"

    outcomes = await asyncio.gather(*(attempt(u) for u in user_ids))

    assert outcomes.count("confirmed") == 3
    assert outcomes.count("slot_full") == 9
    assert await _ledger_state(session_factory, slot_id) == (3, 3)


@pytest.mark.asyncio
async def test_concurrent_duplicate_requests(db_session, session_factory, alice, fcfs_slot):
    """The same requester racing themselves ends up with a single booking."""
    slot_id, user_id = fcfs_slot.id, alice.id
    await db_session.commit()

    async def attempt():
        async with session_factory() as session:
            try:
                await request_seat(session, slot_id, user_id)
                return "confirmed"
            except DuplicateBooking:
                return "duplicate"

    outcomes = await asyncio.gather(*(attempt() for _ in range(5)))

    assert outcomes.count("confirmed") == 1
    assert outcomes.count("duplicate") == 4
    assert await _ledger_state(session_factory, slot_id) == (1, 1)


@pytest.mark.asyncio
async def test_concurrent_cancellations_release_once(db_session, session_factory, alice, fcfs_slot):
    booking = await request_seat(db_session, fcfs_slot.id, alice.id)
    slot_id, booking_id, user_id = fcfs_slot.id, booking.id, alice.id
    await db_session.commit()

    async def attempt():
        async with session_factory() as session:
            try:
                await cancel_booking(session, booking_id, user_id)
                return "cancelled"
            except InvalidState:
                return "already_cancelled"

    outcomes = await asyncio.gather(*(attempt() for _ in range(4)))

    assert outcomes.count("cancelled") == 1
    assert outcomes.count("already_cancelled") == 3
    assert await _ledger_state(session_factory, slot_id) == (0, 0)


@pytest.mark.asyncio
async def test_concurrent_cancellations_promote_in_order(
    db_session, session_factory, owner, make_user, make_slot
):
    """Two tables freed at once go to the first two queued requesters."""
    slot = await make_slot(total_tables=2, waitlist_enabled=True)
    slot_id, owner_id = slot.id, owner.id
    holders = await _users(make_user, "holder", 2)
    queued = await _users(make_user, "queued", 3)
    booking_ids = [(await request_seat(db_session, slot_id, u)).id for u in holders]
    for user_id in queued:
        await waitlist_service.join(db_session, slot_id, user_id)
    await db_session.commit()

    async def cancel(booking_id):
        async with session_factory() as session:
            result = await cancel_booking(session, booking_id, owner_id)
            return result.promotion.booking.user_id

    promoted = await asyncio.gather(*(cancel(b) for b in booking_ids))

    assert sorted(promoted) == sorted(queued[:2])
    assert await _ledger_state(session_factory, slot_id) == (2, 2)
    async with session_factory() as session:
        remaining = (await session.execute(select(WaitlistEntry.user_id))).scalars().all()
    assert remaining == [queued[2]]


@pytest.mark.asyncio
async def test_concurrent_waitlist_joins_get_unique_positions(
    db_session, session_factory, make_user, fcfs_slot
):
    slot_id = fcfs_slot.id
    user_ids = await _users(make_user, "waiter", 8)
    await db_session.commit()

    async def join(user_id):
        async with session_factory() as session:
            entry = await waitlist_service.join(session, slot_id, user_id)
            return entry.position

    positions = await asyncio.gather(*(join(u) for u in user_ids))

    assert sorted(positions) == list(range(1, 9))


@pytest.mark.asyncio
async def test_concurrent_draws_respect_capacity(db_session, session_factory, owner, make_user, make_slot):
    slot = await make_slot(total_tables=3, mode=BookingMode.LOTTERY)
    slot_id, owner_id = slot.id, owner.id
    for user_id in await _users(make_user, "entrant", 6):
        await request_seat(db_session, slot_id, user_id)
    await db_session.commit()

    async def draw():
        async with session_factory() as session:
            try:
                result = await lottery_service.draw_winners(
                    session, slot_id, owner_id, winners_count=2, reject_others=False
                )
                return result.winners_count
            except NoSpotsAvailable:
                return 0

    drawn = await asyncio.gather(draw(), draw())

    assert sorted(drawn) == [1, 2]
    assert await _ledger_state(session_factory, slot_id) == (3, 3)


@pytest.fixture
def lock_calls(monkeypatch):
    """Record the order in which writers take row locks."""
    calls = []
    original_lock_slot = ledger.lock_slot
    original_lock_booking = booking_service.lock_booking

    async def lock_slot(db, slot_id):
        calls.append("slot")
        return await original_lock_slot(db, slot_id)

    async def lock_booking(db, booking_id):
        calls.append("booking")
        return await original_lock_booking(db, booking_id)

    monkeypatch.setattr(ledger, "lock_slot", lock_slot)
    monkeypatch.setattr(booking_service, "lock_booking", lock_booking)
    return calls


@pytest.mark.asyncio
async def test_cancel_locks_slot_before_booking(db_session, alice, fcfs_slot, lock_calls):
    booking = await request_seat(db_session, fcfs_slot.id, alice.id)
    lock_calls.clear()

    await cancel_booking(db_session, booking.id, alice.id)

    assert lock_calls[:2] == ["slot", "booking"]


@pytest.mark.asyncio
async def test_lottery_entry_paths_lock_slot_before_booking(
    db_session, owner, alice, bob, lottery_slot, lock_calls
):
    slot_id, owner_id = lottery_slot.id, owner.id
    first = await request_seat(db_session, slot_id, alice.id)
    second = await request_seat(db_session, slot_id, bob.id)
    first_id, second_id = first.id, second.id

    lock_calls.clear()
    await lottery_service.confirm_lottery_winner(db_session, first_id, owner_id)
    # The size-1 draw re-locks the slot inside the same transaction
    assert lock_calls == ["slot", "booking", "slot"]

    lock_calls.clear()
    await lottery_service.reject_lottery_entry(db_session, second_id, owner_id)
    assert lock_calls == ["slot", "booking"]


@pytest.mark.asyncio
async def test_cancel_races_draw_on_same_slot(db_session, session_factory, owner, make_user, make_slot):
    """A cancel of a pending entry and a draw overlap without deadlock or overbooking."""
    slot = await make_slot(total_tables=2, mode=BookingMode.LOTTERY)
    slot_id, owner_id = slot.id, owner.id
    user_ids = await _users(make_user, "pool", 4)
    entry_ids = [(await request_seat(db_session, slot_id, u)).id for u in user_ids]
    await db_session.commit()

    async def cancel():
        async with session_factory() as session:
            try:
                await cancel_booking(session, entry_ids[0], user_ids[0])
                return "cancelled"
            except InvalidState:
                return "already_cancelled"

    async def draw():
        async with session_factory() as session:
            result = await lottery_service.draw_winners(
                session, slot_id, owner_id, winners_count=2, reject_others=True
            )
            return result.winners_count

    outcomes = await asyncio.gather(cancel(), draw())

    assert outcomes[1] == 2
    assert outcomes[0] in ("cancelled", "already_cancelled")
    # A drawn winner that is then cancelled releases its table
    booked, confirmed = await _ledger_state(session_factory, slot_id)
    assert booked == confirmed
    assert booked in (1, 2)
