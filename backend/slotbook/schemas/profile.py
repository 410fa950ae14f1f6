"""
Pydantic schemas for user profiles and owner-facing participant exports.
"""

from datetime import datetime
from typing import Optional
from pydantic import AnyHttpUrl, BaseModel, Field


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = Field(None, max_length=255)
    venmo_username: Optional[str] = Field(None, max_length=100)
    zelle_identifier: Optional[str] = Field(None, max_length=255)
    payment_sharing_consent: Optional[bool] = None
    webhook_url: Optional[AnyHttpUrl] = None


class ProfileResponse(BaseModel):
    user_id: int
    display_name: Optional[str]
    venmo_username: Optional[str]
    zelle_identifier: Optional[str]
    payment_sharing_consent: bool
    webhook_url: Optional[str]
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ParticipantPaymentInfo(BaseModel):
    booking_id: int
    customer_name: str
    customer_email: str
    party_size: int
    dietary_restrictions: Optional[str]
    venmo_username: Optional[str]
    zelle_identifier: Optional[str]


class WebhookResult(BaseModel):
    success: bool
    sent_count: int
    excluded_count: int
    webhook_status: int
