"""
Domain errors raised by the booking core.

Each error carries the HTTP status and a stable machine-readable code so the
API layer can render it without knowing about individual services. Capacity
and duplicate outcomes are expected results of contention, not defects;
InvalidState is the one that signals a broken invariant upstream.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for all expected booking-core outcomes."""

    status_code: int = 400
    code: str = "booking_error"

    def __init__(self, detail: str, **context):
        self.detail = detail
        self.context = context
        super().__init__(detail)


class NotFound(BookingError):
    status_code = 404
    code = "not_found"

    def __init__(self, resource: str, resource_id: Optional[int] = None):
        detail = f"{resource} not found" if resource_id is None else f"{resource} {resource_id} not found"
        super().__init__(detail, resource=resource, resource_id=resource_id)


class Unauthorized(BookingError):
    """Actor is not allowed to perform an owner-only (or holder-only) operation."""

    status_code = 403
    code = "unauthorized"


class CapacityExceeded(BookingError):
    status_code = 409
    code = "capacity_exceeded"


class SlotFull(CapacityExceeded):
    code = "slot_full"

    def __init__(self, slot_id: int, waitlist_enabled: bool = False):
        detail = "This slot is fully booked"
        if waitlist_enabled:
            detail += "; you can join the waitlist instead"
        super().__init__(detail, slot_id=slot_id, waitlist_enabled=waitlist_enabled)
        self.waitlist_enabled = waitlist_enabled


class DuplicateBooking(BookingError):
    status_code = 409
    code = "duplicate_booking"


class NoSpotsAvailable(BookingError):
    status_code = 409
    code = "no_spots_available"


class WaitlistDisabled(BookingError):
    status_code = 409
    code = "waitlist_disabled"


class InvalidState(BookingError):
    code = "invalid_state"


class InvalidRequest(BookingError):
    """Caller input the core cannot act on (clashing slot time, incomplete guest contact)."""

    status_code = 422
    code = "invalid_request"


class WebhookNotConfigured(BookingError):
    code = "webhook_not_configured"


class WebhookDeliveryFailed(BookingError):
    status_code = 502
    code = "webhook_delivery_failed"
