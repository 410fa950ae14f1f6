"""
Admission policy factory.
Maps a slot's booking mode to the policy that admits its requests.
"""

from slotbook.models.slot import BookingMode
from slotbook.services.interfaces.admission import AdmissionPolicy
from slotbook.services.interfaces.fcfs_admission import FcfsAdmission
from slotbook.services.interfaces.lottery_admission import LotteryAdmission

# Policies are stateless, one shared instance per mode
_POLICIES: dict[BookingMode, AdmissionPolicy] = {
    BookingMode.FCFS: FcfsAdmission(),
    BookingMode.LOTTERY: LotteryAdmission(),
}


def get_admission_policy(mode: BookingMode) -> AdmissionPolicy:
    """Get the admission policy for a booking mode."""
    return _POLICIES[BookingMode(mode)]
