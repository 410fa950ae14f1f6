"""
Lottery admission - requests pool until the owner draws.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.models.booking import BookingStatus
from slotbook.models.slot import BookingMode, Slot
from slotbook.services.interfaces.admission import AdmissionPolicy


class LotteryAdmission(AdmissionPolicy):
    """Every entry is accepted as pending; the pool is unbounded."""

    mode = BookingMode.LOTTERY

    async def admit(self, db: AsyncSession, slot: Slot) -> BookingStatus:
        return BookingStatus.PENDING_LOTTERY
