"""
Waitlist endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.db.session import get_db
from slotbook.schemas.waitlist import WaitlistEntryResponse, WaitlistJoin
from slotbook.services import waitlist_service
from slotbook.core.security import get_current_user_id

router = APIRouter(tags=["Waitlist"])


@router.post("/waitlist/", response_model=WaitlistEntryResponse, status_code=status.HTTP_201_CREATED)
async def join_waitlist(
    join_data: WaitlistJoin,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Queue for a slot. Only available on slots with the waitlist enabled."""
    entry = await waitlist_service.join(
        db,
        join_data.slot_id,
        user_id,
        party_size=join_data.party_size,
        customer_name=join_data.customer_name,
        customer_email=join_data.customer_email,
        customer_phone=join_data.customer_phone,
    )
    response = WaitlistEntryResponse.model_validate(entry)
    response.rank = await waitlist_service.rank_of(db, entry)
    return response


@router.delete("/waitlist/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def leave_waitlist(
    entry_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await waitlist_service.leave(db, entry_id, user_id)


@router.get("/waitlist/", response_model=list[WaitlistEntryResponse])
async def my_waitlist_entries(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """The caller's entries with their current place in each queue."""
    return await waitlist_service.get_user_entries(db, user_id)


@router.get("/slots/{slot_id}/waitlist", response_model=list[WaitlistEntryResponse])
async def slot_waitlist(
    slot_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Owner view of a slot's queue in FIFO order."""
    return await waitlist_service.list_entries(db, slot_id, user_id)
