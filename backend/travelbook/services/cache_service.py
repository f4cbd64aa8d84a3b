"""
Redis caching for price quotes and the sweeper's rate limit.

CACHING STRATEGY
================

What we cache:
  - Resolved price quotes, keyed "quotes:{route_id}:{travel_date}:{recurring_id}"
  - Nothing seat-related. Seat availability is always read from the ledger;
    a stale seat map is exactly the overbooking bug we are avoiding.

Why:
  - Trip listings quote every schedule they show; resolution costs up to
    five lookups per quote.
  - Pricing inputs change rarely and only through admin operations.

Invalidation strategy:
  - Any override / holiday / recurring rule / route price change deletes all
    "quotes:" keys (prefix SCAN). The keyspace is small: one key per quoted
    route/date.
  - TTL-based expiry as safety net.

Failure policy:
  Redis is advisory. Any Redis error is logged and the caller falls back to
  computing the value (fail open); the relational store stays authoritative.
"""

import json
import time
from decimal import Decimal
from typing import Optional

import redis.asyncio as redis

from travelbook.core.config import get_settings
from travelbook.core.logging import get_logger
from travelbook.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None

QUOTE_KEY_PREFIX = "quotes:"
SWEEP_LOCK_KEY = "sweeper:auto_complete:lock"


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            # Test connection
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_quote_key(route_id: int, travel_date, recurring_schedule_id: Optional[int]) -> str:
    return f"{QUOTE_KEY_PREFIX}{route_id}:{travel_date.isoformat()}:{recurring_schedule_id or '-'}"


class QuoteCache:
    """Price quote cache. A None client turns every call into a no-op."""

    def __init__(self, client: Optional[redis.Redis], ttl: Optional[int] = None):
        self.client = client
        self.ttl = ttl or settings.QUOTE_CACHE_TTL

    async def get(self, route_id: int, travel_date, recurring_schedule_id: Optional[int] = None) -> Optional[Decimal]:
        if not self.client:
            return None

        key = _make_quote_key(route_id, travel_date, recurring_schedule_id)
        try:
            data = await self.client.get(key)
            record_cache_operation("get", hit=data is not None)
            if data is not None:
                logger.debug("cache_hit", key=key)
                return Decimal(json.loads(data)["price"])
            logger.debug("cache_miss", key=key)
        except Exception as e:
            logger.error("cache_get_error", key=key, error=str(e))

        return None

    async def set(
        self,
        route_id: int,
        travel_date,
        recurring_schedule_id: Optional[int],
        price: Decimal,
    ) -> None:
        if not self.client:
            return

        key = _make_quote_key(route_id, travel_date, recurring_schedule_id)
        try:
            await self.client.setex(key, self.ttl, json.dumps({"price": str(price)}))
            logger.debug("cache_set", key=key, ttl=self.ttl)
        except Exception as e:
            logger.error("cache_set_error", key=key, error=str(e))

    async def invalidate(self) -> None:
        """Drop every cached quote (prefix SCAN + DELETE)."""
        if not self.client:
            return

        try:
            deleted = 0
            async for key in self.client.scan_iter(match=f"{QUOTE_KEY_PREFIX}*", count=100):
                await self.client.delete(key)
                deleted += 1
            logger.info("quote_cache_invalidated", keys_deleted=deleted)
        except Exception as e:
            logger.error("cache_invalidation_error", error=str(e))


class SweepThrottle:
    """
    At-most-once-per-interval gate for the lifecycle sweeper.

    With Redis the gate is shared by every worker process (SET NX EX); without
    it each process keeps its own last-run timestamp.
    """

    def __init__(self, client: Optional[redis.Redis], interval_seconds: Optional[int] = None):
        self.client = client
        self.interval = interval_seconds if interval_seconds is not None else settings.AUTO_COMPLETE_INTERVAL_SECONDS
        self._last_run: Optional[float] = None

    async def acquire(self) -> bool:
        """True when the caller may run a sweep now."""
        if self.client:
            try:
                acquired = await self.client.set(
                    SWEEP_LOCK_KEY, str(time.time()), nx=True, ex=max(self.interval, 1)
                )
                return bool(acquired)
            except Exception as e:
                logger.error("sweep_throttle_error", error=str(e))

        now = time.monotonic()
        if self._last_run is not None and now - self._last_run < self.interval:
            return False
        self._last_run = now
        return True


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
