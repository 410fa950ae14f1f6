"""
Admission policy interface.
One implementation per booking mode, dispatched by the admission engine.
"""

from abc import ABC, abstractmethod

from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.models.booking import BookingStatus
from slotbook.models.slot import BookingMode, Slot


class AdmissionPolicy(ABC):
    """
    Decides the initial status of a new booking and applies its ledger effect.

    Implementations:
    - FcfsAdmission: claim a table now or fail with SlotFull
    - LotteryAdmission: pool the request; capacity is enforced at draw time
    """

    mode: BookingMode

    #: Whether an admitted booking should trigger a "booking" notification
    notifies_on_admit: bool = False

    @abstractmethod
    async def admit(self, db: AsyncSession, slot: Slot) -> BookingStatus:
        """
        Apply the policy to a locked slot row.

        Args:
            db: Session holding the slot row lock
            slot: Slot being booked

        Returns:
            Status the new booking is created with
        """
        pass
