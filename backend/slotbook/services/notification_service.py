"""
Booking notifications for the external notification collaborator.

Events are POSTed to NOTIFICATION_WEBHOOK_URL as JSON. Delivery is
fire-and-forget: callers emit only after their transaction has committed, the
HTTP call runs as a background task, and failures are logged and counted but
never raised back into the booking flow.
"""

import asyncio
import enum
from dataclasses import asdict, dataclass
from typing import Optional

import httpx

from slotbook.core.config import get_settings
from slotbook.core.logging import get_logger
from slotbook.core.metrics import record_notification

logger = get_logger(__name__)
settings = get_settings()


class BookingType(str, enum.Enum):
    BOOKING = "booking"
    WAITLIST = "waitlist"
    PROMOTION = "promotion"


@dataclass(frozen=True)
class NotificationEvent:
    slot_id: int
    customer_name: str
    customer_email: str
    party_size: int
    booking_type: BookingType

    def payload(self) -> dict:
        data = asdict(self)
        data["booking_type"] = self.booking_type.value
        return data


class Notifier:
    """Schedules notification deliveries without blocking the caller."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = settings.NOTIFICATION_WEBHOOK_URL if url is None else url
        self.timeout = timeout or settings.NOTIFICATION_TIMEOUT_SECONDS
        self.max_attempts = max(max_attempts or settings.NOTIFICATION_MAX_ATTEMPTS, 1)
        self.transport = transport
        self._pending: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def emit(self, event: NotificationEvent) -> None:
        if not self.enabled:
            record_notification(event.booking_type.value, "skipped")
            logger.debug("notification_skipped", reason="no_url", booking_type=event.booking_type.value)
            return

        task = asyncio.create_task(self._deliver(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, event: NotificationEvent) -> bool:
        payload = event.payload()
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    response = await client.post(self.url, json=payload)
                    response.raise_for_status()
                except httpx.HTTPError as e:
                    logger.warning(
                        "notification_attempt_failed",
                        booking_type=event.booking_type.value,
                        slot_id=event.slot_id,
                        attempt=attempt,
                        error=str(e),
                    )
                    if attempt < self.max_attempts:
                        await asyncio.sleep(0.2 * 2 ** (attempt - 1))
                    continue

                record_notification(event.booking_type.value, "delivered")
                logger.info(
                    "notification_delivered",
                    booking_type=event.booking_type.value,
                    slot_id=event.slot_id,
                    attempt=attempt,
                )
                return True

        record_notification(event.booking_type.value, "failed")
        logger.error("notification_dropped", booking_type=event.booking_type.value, slot_id=event.slot_id)
        return False

    async def drain(self) -> None:
        """Wait for in-flight deliveries (shutdown)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)


_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    """Get notifier singleton."""
    global _notifier
    if _notifier is None:
        _notifier = Notifier()
    return _notifier


def set_notifier(notifier: Optional[Notifier]) -> None:
    global _notifier
    _notifier = notifier
