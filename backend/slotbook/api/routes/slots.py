"""
Slot endpoints: owner CRUD with Redis caching on the listing, plus the
owner's view of a slot's bookings.
"""

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.db.session import get_db
from slotbook.models.booking import BookingStatus
from slotbook.schemas.booking import BookingResponse
from slotbook.schemas.slot import (
    DateAvailability,
    MonthAvailabilityResponse,
    SlotCreate,
    SlotListResponse,
    SlotResponse,
    SlotUpdate,
    UpcomingSlotResponse,
)
from slotbook.services import slot_service
from slotbook.services.booking_service import get_slot_bookings
from slotbook.services.cache_service import (
    get_cached_slots,
    invalidate_slot_cache,
    make_list_key,
    set_cached_slots,
)
from slotbook.core.security import get_current_user_id
from slotbook.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/slots", tags=["Slots"])


@router.post("/", response_model=SlotResponse, status_code=status.HTTP_201_CREATED)
async def create_slot_endpoint(
    slot_data: SlotCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Create a slot owned by the caller."""
    slot = await slot_service.create_slot(db, slot_data, user_id)
    await invalidate_slot_cache()
    return slot


@router.get("/", response_model=SlotListResponse)
async def list_slots_endpoint(
    on_date: Optional[date] = Query(None, alias="date"),
    from_date: Optional[date] = Query(None),
    meal_time: Optional[Literal["breakfast", "lunch", "dinner"]] = Query(None),
    owner_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """
    List slots by date and start time.
    Served from Redis when cached; every slot or booking write invalidates it.
    """
    key = make_list_key(date=on_date, from_date=from_date, meal=meal_time, owner=owner_id)
    cached = await get_cached_slots(key)
    if cached:
        logger.info("slots_list_cache_hit", key=key)
        cached["cached"] = True
        return SlotListResponse(**cached)

    slots, total = await slot_service.list_slots(
        db, on_date=on_date, meal_time=meal_time, from_date=from_date, owner_id=owner_id
    )
    response_data = {
        "slots": [SlotResponse.model_validate(s).model_dump(mode="json") for s in slots],
        "total": total,
        "cached": False,
    }
    await set_cached_slots(key, response_data)
    return SlotListResponse(**response_data)


@router.get("/availability", response_model=MonthAvailabilityResponse)
async def month_availability_endpoint(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    db: AsyncSession = Depends(get_db),
):
    """Calendar view: per date, how many slots still have a free table."""
    counts = await slot_service.month_availability(db, year, month)
    return MonthAvailabilityResponse(
        year=year,
        month=month,
        days=[DateAvailability(date=day, count=count) for day, count in counts.items()],
    )


@router.get("/upcoming", response_model=list[UpcomingSlotResponse])
async def upcoming_slots_endpoint(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Upcoming slots with their host's display name."""
    rows = await slot_service.upcoming_slots(db, limit=limit)
    return [
        UpcomingSlotResponse(**SlotResponse.model_validate(slot).model_dump(), host_name=host_name)
        for slot, host_name in rows
    ]


@router.get("/{slot_id}", response_model=SlotResponse)
async def get_slot_endpoint(slot_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single slot. Not cached (live table counts)."""
    return await slot_service.get_slot(db, slot_id)


@router.patch("/{slot_id}", response_model=SlotResponse)
async def update_slot_endpoint(
    slot_id: int,
    changes: SlotUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Owner edit. Capacity cannot drop below the tables already booked."""
    slot = await slot_service.update_slot(db, slot_id, changes, user_id)
    await invalidate_slot_cache()
    return slot


@router.delete("/{slot_id}")
async def delete_slot_endpoint(
    slot_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Delete a slot, cancelling its bookings and clearing its waitlist."""
    summary = await slot_service.delete_slot(db, slot_id, user_id)
    await invalidate_slot_cache()
    return {"message": "Slot deleted", **summary}


@router.get("/{slot_id}/bookings", response_model=list[BookingResponse])
async def list_slot_bookings(
    slot_id: int,
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Owner view of every booking on a slot."""
    return await get_slot_bookings(db, slot_id, user_id, status_filter)
