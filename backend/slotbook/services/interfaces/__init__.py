"""
Admission policies, one per booking mode.
"""

from .admission import AdmissionPolicy
from .fcfs_admission import FcfsAdmission
from .lottery_admission import LotteryAdmission

__all__ = ['AdmissionPolicy', 'FcfsAdmission', 'LotteryAdmission']
