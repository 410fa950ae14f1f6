"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Admission metrics
admission_requests = Counter(
    'slotbook_admission_requests_total',
    'Seat requests by outcome',
    ['mode', 'result']  # fcfs/lottery; confirmed, pending_lottery, slot_full, duplicate
)

booking_latency = Histogram(
    'slotbook_booking_latency_seconds',
    'Seat request latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Ledger metrics
ledger_conflicts = Counter(
    'slotbook_ledger_conflicts_total',
    'Ledger writes rejected by the capacity guard',
    ['operation']  # increment, decrement, resize
)

# Lottery metrics
lottery_draws = Counter(
    'slotbook_lottery_draws_total',
    'Lottery draws by outcome',
    ['result']  # drawn, no_spots
)

lottery_winners = Counter(
    'slotbook_lottery_winners_total',
    'Lottery entries confirmed as winners'
)

# Waitlist metrics
waitlist_joins = Counter(
    'slotbook_waitlist_joins_total',
    'Waitlist entries created'
)

waitlist_promotions = Counter(
    'slotbook_waitlist_promotions_total',
    'Waitlist entries promoted to confirmed bookings'
)

cancellations = Counter(
    'slotbook_cancellations_total',
    'Cancelled bookings by prior status',
    ['prior_status']
)

# Notification metrics
notification_deliveries = Counter(
    'slotbook_notification_deliveries_total',
    'Notification deliveries',
    ['booking_type', 'result']  # delivered, failed, skipped
)

# Cache metrics
cache_operations = Counter(
    'slotbook_cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_admission(mode: str, result: str):
    """Record seat request outcome."""
    admission_requests.labels(mode=mode, result=result).inc()


def record_ledger_conflict(operation: str):
    ledger_conflicts.labels(operation=operation).inc()


def record_lottery_draw(winners: int):
    """Record a lottery draw. Zero winners means the slot had no spots."""
    if winners:
        lottery_draws.labels(result="drawn").inc()
        lottery_winners.inc(winners)
    else:
        lottery_draws.labels(result="no_spots").inc()


def record_cancellation(prior_status: str):
    cancellations.labels(prior_status=prior_status).inc()


def record_notification(booking_type: str, result: str):
    notification_deliveries.labels(booking_type=booking_type, result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
