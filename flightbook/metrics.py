import logging
from typing import List

from prometheus_client import Counter, Gauge, Histogram
from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Notification DLQ depth
NOTIF_DLQ_DEPTH = Gauge("flightbook_notification_dlq_depth", "Redis DLQ list length for notifications")

# Reservation engine metrics
RESERVATION_ATTEMPTS = Counter(
    "flightbook_reservation_attempts_total",
    "Reserve/amend/release outcomes",
    ["operation", "result"],
)
RESERVATION_RETRIES = Counter(
    "flightbook_reservation_retries_total",
    "Attempts re-run after losing a race on a flight's availability",
    ["operation"],
)
RESERVATION_LATENCY = Histogram(
    "flightbook_reservation_latency_seconds",
    "Latency of reserve/amend/release including retries",
    ["operation"],
)


async def update_queue_depth(redis: Redis, keys: List[str] = None):
    """Refresh queue depth gauges from Redis list lengths."""
    keys = keys or ["notification_dlq"]
    try:
        depth = await redis.llen(keys[0])
    except Exception:
        logger.warning("Could not read queue depth for %s", keys[0], exc_info=True)
        return
    NOTIF_DLQ_DEPTH.set(depth)
