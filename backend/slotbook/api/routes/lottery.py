"""
Lottery endpoints for slot owners.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.db.session import get_db
from slotbook.schemas.booking import BookingResponse
from slotbook.schemas.lottery import LotteryDrawRequest, LotteryDrawResponse
from slotbook.services import lottery_service
from slotbook.services.cache_service import invalidate_slot_cache
from slotbook.core.security import get_current_user_id

router = APIRouter(tags=["Lottery"])


@router.post("/slots/{slot_id}/lottery/draw", response_model=LotteryDrawResponse)
async def draw(
    slot_id: int,
    draw_request: LotteryDrawRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Draw winners at random among pending entries, capped at the tables left.
    Answers 409 no_spots_available when nobody can be confirmed.
    """
    result = await lottery_service.draw_winners(
        db,
        slot_id,
        user_id,
        entry_ids=draw_request.entry_ids,
        winners_count=draw_request.winners_count,
        reject_others=draw_request.reject_others,
    )
    await invalidate_slot_cache()
    return LotteryDrawResponse(
        slot_id=result.slot_id,
        winners_count=result.winners_count,
        winners=[BookingResponse.model_validate(b) for b in result.winners],
        rejected=[BookingResponse.model_validate(b) for b in result.rejected],
    )


@router.get("/slots/{slot_id}/lottery/entries", response_model=list[BookingResponse])
async def pending_entries(
    slot_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await lottery_service.get_pending_entries(db, slot_id, user_id)


@router.post("/lottery/entries/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_entry(
    booking_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Confirm one hand-picked entry (a draw of size one)."""
    booking = await lottery_service.confirm_lottery_winner(db, booking_id, user_id)
    await invalidate_slot_cache()
    return booking


@router.post("/lottery/entries/{booking_id}/reject", response_model=BookingResponse)
async def reject_entry(
    booking_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await lottery_service.reject_lottery_entry(db, booking_id, user_id)
