from slotbook.schemas.user import UserCreate, UserResponse, UserLogin, Token
from slotbook.schemas.slot import SlotCreate, SlotUpdate, SlotResponse, SlotListResponse
from slotbook.schemas.booking import BookingCreate, BookingResponse, BookingCancelResponse
from slotbook.schemas.waitlist import WaitlistJoin, WaitlistEntryResponse
from slotbook.schemas.lottery import LotteryDrawRequest, LotteryDrawResponse
from slotbook.schemas.profile import ProfileUpdate, ProfileResponse, ParticipantPaymentInfo, WebhookResult

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "SlotCreate", "SlotUpdate", "SlotResponse", "SlotListResponse",
    "BookingCreate", "BookingResponse", "BookingCancelResponse",
    "WaitlistJoin", "WaitlistEntryResponse",
    "LotteryDrawRequest", "LotteryDrawResponse",
    "ProfileUpdate", "ProfileResponse", "ParticipantPaymentInfo", "WebhookResult",
]
