"""
Profile endpoints and the owner's participant exports.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.db.session import get_db
from slotbook.schemas.profile import ParticipantPaymentInfo, ProfileResponse, ProfileUpdate, WebhookResult
from slotbook.services import profile_service, webhook_service
from slotbook.core.exceptions import NotFound
from slotbook.core.security import get_current_user_id

router = APIRouter(tags=["Profile"])


@router.get("/profile/", response_model=ProfileResponse)
async def read_profile(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    profile = await profile_service.get_profile(db, user_id)
    if profile is None:
        raise NotFound("Profile")
    return profile


@router.put("/profile/", response_model=ProfileResponse)
async def update_profile(
    changes: ProfileUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Create or update the caller's profile."""
    return await profile_service.upsert_profile(db, user_id, changes)


@router.get("/slots/{slot_id}/participants", response_model=list[ParticipantPaymentInfo])
async def participants(
    slot_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Confirmed participants; payment handles only where the participant consented."""
    return await profile_service.get_participant_payment_info(db, slot_id, user_id)


@router.post("/slots/{slot_id}/webhook", response_model=WebhookResult)
async def send_webhook(
    slot_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Push the consented participant list to the caller's webhook URL."""
    return await webhook_service.send_participant_webhook(db, slot_id, user_id)
