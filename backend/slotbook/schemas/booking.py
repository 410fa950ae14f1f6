"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from slotbook.models.booking import BookingStatus


class BookingCreate(BaseModel):
    slot_id: int
    party_size: int = Field(default=1, gt=0, le=20)
    customer_name: Optional[str] = Field(None, min_length=1, max_length=255)
    customer_email: Optional[EmailStr] = None
    dietary_restrictions: Optional[str] = Field(None, max_length=500)


class BookingResponse(BaseModel):
    id: int
    slot_id: Optional[int]
    user_id: Optional[int]
    customer_name: str
    customer_email: str
    party_size: int
    dietary_restrictions: Optional[str] = None
    status: BookingStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    status: BookingStatus
    promoted: bool = False
    promoted_booking_id: Optional[int] = None
