"""
Booking endpoints: seat requests and cancellations.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.db.session import get_db
from slotbook.schemas.booking import BookingCancelResponse, BookingCreate, BookingResponse
from slotbook.services.admission_service import request_seat
from slotbook.services.booking_service import get_user_bookings
from slotbook.services.cancellation_service import cancel_booking
from slotbook.services.cache_service import invalidate_slot_cache
from slotbook.core.security import get_current_user_id

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Request a table.

    FCFS slots confirm immediately or answer 409 slot_full; lottery slots
    return a pending_lottery entry for the owner's draw.
    """
    booking = await request_seat(
        db,
        booking_data.slot_id,
        user_id,
        party_size=booking_data.party_size,
        customer_name=booking_data.customer_name,
        customer_email=booking_data.customer_email,
        dietary_restrictions=booking_data.dietary_restrictions,
    )
    await invalidate_slot_cache()
    return booking


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking; a released table goes to the head of the waitlist."""
    result = await cancel_booking(db, booking_id, user_id)
    await invalidate_slot_cache()
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=result.booking.id,
        status=result.booking.status,
        promoted=result.promotion is not None,
        promoted_booking_id=result.promotion.booking.id if result.promotion else None,
    )


@router.get("/", response_model=list[BookingResponse])
async def list_user_bookings(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get all bookings for the authenticated user."""
    return await get_user_bookings(db, user_id)
