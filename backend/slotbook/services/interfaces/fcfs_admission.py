"""
First-come-first-served admission.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.core.exceptions import CapacityExceeded, SlotFull
from slotbook.models.booking import BookingStatus
from slotbook.models.slot import BookingMode, Slot
from slotbook.services import ledger
from slotbook.services.interfaces.admission import AdmissionPolicy


class FcfsAdmission(AdmissionPolicy):
    """
    Confirm instantly while tables remain.

    Confirmation order is whatever order the ledger increments commit in;
    the caller decides whether to offer the waitlist on SlotFull.
    """

    mode = BookingMode.FCFS
    notifies_on_admit = True

    async def admit(self, db: AsyncSession, slot: Slot) -> BookingStatus:
        try:
            await ledger.increment(db, slot.id)
        except CapacityExceeded as e:
            raise SlotFull(slot.id, waitlist_enabled=slot.waitlist_enabled) from e
        return BookingStatus.CONFIRMED
