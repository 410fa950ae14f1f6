"""
Pydantic schemas for waitlist requests and entries.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class WaitlistJoin(BaseModel):
    slot_id: int
    party_size: int = Field(default=1, gt=0, le=20)
    customer_name: Optional[str] = Field(None, min_length=1, max_length=255)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = Field(None, max_length=50)


class WaitlistEntryResponse(BaseModel):
    id: int
    slot_id: int
    user_id: int
    customer_name: str
    customer_email: str
    customer_phone: Optional[str]
    party_size: int
    position: int
    rank: Optional[int] = None  # 1-based place in the queue, computed on read
    notified_at: Optional[datetime]
    created_at: datetime

    model_config = {"from_attributes": True}
