"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from slotbook.api.routes import auth, slots, bookings, waitlist, lottery, profile

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(slots.router)
api_router.include_router(bookings.router)
api_router.include_router(waitlist.router)
api_router.include_router(lottery.router)
api_router.include_router(profile.router)
