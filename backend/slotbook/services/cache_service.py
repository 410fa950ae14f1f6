"""
Redis caching service for slot listings.

CACHING STRATEGY
================

What we cache:
  - Slot listing responses (JSON-serialized)
  - Cache key pattern: "slots:list:date={date}&meal={meal}&from={from}&owner={owner}"

Invalidation strategy:
  - Any write that changes a slot or its ledger (slot create/update/delete,
    booking, cancellation, lottery draw) deletes every "slots:list:*" key
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

What we do NOT cache:
  - Single slots and anything the admission path reads. Admission always
    locks the slot row; a cached tables_remaining is display-only.

Redis is optional: with REDIS_ENABLED=false (tests, local dev) every call
is a no-op and listings are served from the database.
"""

import json
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from slotbook.core.config import get_settings
from slotbook.core.logging import get_logger
from slotbook.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

LIST_PREFIX = "slots:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or down."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            logger.error("redis_connection_failed", error=str(e))
            return None
        _redis_client = client
        logger.info("redis_connected", url=settings.REDIS_URL)

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def make_list_key(**filters) -> str:
    parts = "&".join(f"{k}={'' if v is None else v}" for k, v in sorted(filters.items()))
    return f"{LIST_PREFIX}{parts}"


async def get_cached_slots(key: str) -> Optional[dict]:
    """Retrieve a cached slot listing."""
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(key)
    except RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    if data:
        logger.debug("cache_hit", key=key)
        return json.loads(data)
    logger.debug("cache_miss", key=key)
    return None


async def set_cached_slots(key: str, data: dict) -> None:
    """Cache a slot listing with TTL."""
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_slot_cache() -> None:
    """Drop every cached slot listing (SCAN on the key prefix)."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
    except RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
