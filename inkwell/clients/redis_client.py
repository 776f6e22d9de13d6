"""
Redis client wrapper.

Used only when snapshot_backend = "redis":
  • Page snapshots — STRING (JSON) keyed by {redis_snapshot_prefix}{slug}
  • Rebuild locks  — STRING keyed by lock:{redis_snapshot_prefix}{slug},
                     SET NX EX so one process rebuilds a slug at a time

Every API worker process reads and writes the same snapshots, so a page
regenerated by one worker is served fresh by all of them.
"""
import logging
from typing import Optional

import redis.asyncio as aioredis

from inkwell.config import settings

logger = logging.getLogger(__name__)

_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    global _redis
    _redis = aioredis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        decode_responses=True,
    )
    await _redis.ping()
    logger.info("Redis connected at %s:%s", settings.redis_host, settings.redis_port)
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
