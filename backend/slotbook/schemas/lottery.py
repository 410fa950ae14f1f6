"""
Pydantic schemas for lottery draws.
"""

from typing import Optional
from pydantic import BaseModel, Field

from slotbook.schemas.booking import BookingResponse


class LotteryDrawRequest(BaseModel):
    winners_count: int = Field(1, ge=1)
    reject_others: bool = True
    # Restrict the draw to these pending entries; all pending entries when omitted
    entry_ids: Optional[list[int]] = None


class LotteryDrawResponse(BaseModel):
    slot_id: int
    winners_count: int
    winners: list[BookingResponse]
    rejected: list[BookingResponse]
