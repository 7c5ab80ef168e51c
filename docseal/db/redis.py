"""Redis connection management.

Redis holds the one piece of state that must be shared between API
instances but need not be durable: failed secret-key attempt counters and
blocks.  When REDIS_URL is unset, ``redis_pool`` is None and the limiter
runs in-process.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from docseal.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Verify connectivity on startup and close the pool on shutdown."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured; attempt limiter is process-local")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected")
    except Exception:
        # Keep serving; /health reports redis as degraded.
        logger.exception("Redis connection failed on startup")

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
