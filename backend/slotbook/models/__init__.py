from slotbook.models.user import AppRole, User, UserProfile, UserRole
from slotbook.models.slot import BookingMode, Slot
from slotbook.models.booking import Booking, BookingStatus
from slotbook.models.waitlist import WaitlistEntry

__all__ = [
    "AppRole", "User", "UserProfile", "UserRole",
    "BookingMode", "Slot",
    "Booking", "BookingStatus",
    "WaitlistEntry",
]
