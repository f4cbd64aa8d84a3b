"""
Prometheus counters for bookings, pricing and the schedule lifecycle.
Scraped at /metrics.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, conflict, rejected, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking request latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

db_retries = Counter(
    'db_retry_attempts_total',
    'Booking transaction retries caused by lock contention'
)

# Schedule lifecycle metrics
schedule_cancellations = Counter(
    'schedule_cancellations_total',
    'Schedules cancelled through the cancellation cascade'
)

bookings_auto_completed = Counter(
    'bookings_auto_completed_total',
    'Bookings moved to completed by the lifecycle sweeper'
)

# Pricing metrics
price_quotes = Counter(
    'price_quotes_total',
    'Price quotes served',
    ['source']  # cache, computed
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, conflict, rejected, error"""
    booking_attempts.labels(status=status).inc()


def record_price_quote(source: str):
    price_quotes.labels(source=source).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
