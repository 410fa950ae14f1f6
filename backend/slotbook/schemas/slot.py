"""
Pydantic schemas for slot-related request/response validation.
"""

from datetime import date as date_type, datetime, time
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from slotbook.models.slot import BookingMode


class SlotCreate(BaseModel):
    name: str = Field("", max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    date: date_type
    start_time: time
    end_time: Optional[time] = None
    total_tables: int = Field(1, ge=1, le=10000)
    booking_mode: BookingMode = BookingMode.FCFS
    waitlist_enabled: bool = False

    @model_validator(mode="after")
    def check_times(self):
        if self.end_time is not None and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class SlotUpdate(BaseModel):
    """Owner edit. Capacity may be lowered only down to the tables already booked."""

    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    total_tables: Optional[int] = Field(None, ge=1, le=10000)
    booking_mode: Optional[BookingMode] = None
    waitlist_enabled: Optional[bool] = None


class SlotResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    date: date_type
    start_time: time
    end_time: Optional[time]
    total_tables: int
    booked_tables: int
    tables_remaining: int
    booking_mode: BookingMode
    waitlist_enabled: bool
    owner_id: int
    created_at: datetime

    model_config = {"from_attributes": True}


class SlotListResponse(BaseModel):
    slots: list[SlotResponse]
    total: int
    cached: bool = False


class UpcomingSlotResponse(SlotResponse):
    host_name: Optional[str] = None


class DateAvailability(BaseModel):
    date: date_type
    count: int


class MonthAvailabilityResponse(BaseModel):
    year: int
    month: int
    days: list[DateAvailability]
