"""Redis connection management.

When REDIS_URL is configured, a client is created at import time and
the entity store persists its four collections there, so every API
process sees the same data.  When it's None (local dev, tests), the
store falls back to an in-memory key-value repo and no Redis server is
needed.

The client is synchronous: store operations run to completion inside a
single handler call and the durable read/write is the only I/O they do.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis

from lms.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_client: redis.Redis | None = redis.Redis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_client = None


def ping_redis() -> str:
    """Return "ok", "degraded" or "not_configured" for the health check."""
    if redis_client is None:
        return "not_configured"
    try:
        redis_client.ping()
    except redis.RedisError:
        return "degraded"
    return "ok"


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook: verify connectivity, release the pool on exit."""
    if redis_client is None:
        logger.info("No REDIS_URL configured; store uses the in-memory repo")
        yield
        return

    try:
        redis_client.ping()
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except redis.RedisError:
        # Start anyway; /health reports the degraded dependency.
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    redis_client.close()
    logger.info("Redis connection pool closed")
