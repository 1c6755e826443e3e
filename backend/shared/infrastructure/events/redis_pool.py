"""
Redis Connection Pool Management.

One async client per process, shared by stream publishers and consumers.
"""

from __future__ import annotations

import asyncio
import threading

import redis.asyncio as redis

from shared.config.logging import get_logger
from shared.config.settings import settings

logger = get_logger(__name__)

_redis_pool: redis.Redis | None = None
_redis_pool_lock: asyncio.Lock | None = None
_pool_lock_init = threading.Lock()


def _get_pool_lock() -> asyncio.Lock:
    """
    Get or create the pool lock lazily, so it binds to the running loop.

    The threading lock keeps two coroutines from creating different
    asyncio.Lock instances.
    """
    global _redis_pool_lock
    if _redis_pool_lock is None:
        with _pool_lock_init:
            if _redis_pool_lock is None:
                _redis_pool_lock = asyncio.Lock()
    return _redis_pool_lock


async def get_redis_pool() -> redis.Redis:
    """Get or create the async Redis client singleton."""
    global _redis_pool

    if _redis_pool is not None:
        return _redis_pool

    async with _get_pool_lock():
        # Another coroutine may have won the race
        if _redis_pool is None:
            _redis_pool = redis.from_url(
                settings.redis_url,
                max_connections=settings.redis_pool_max_connections,
                decode_responses=True,
                socket_connect_timeout=settings.redis_socket_timeout,
                socket_timeout=settings.redis_socket_timeout,
                health_check_interval=30,
            )
            logger.info(
                "Redis async pool initialized",
                max_connections=settings.redis_pool_max_connections,
                timeout=settings.redis_socket_timeout,
            )
    return _redis_pool


async def close_redis_pool() -> None:
    """Close the shared client on shutdown."""
    global _redis_pool, _redis_pool_lock

    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None
        logger.info("Redis async pool closed")
    _redis_pool_lock = None
