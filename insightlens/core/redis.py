"""
Redis connection management.

Provides a shared ``ConnectionPool`` per Redis URL and a
convenience factory for ``redis.Redis`` clients.  Only the
``redis`` credential backend talks to Redis.
"""

from __future__ import annotations

import redis

from insightlens.core.config import Settings

# ── Connection pools, one per Redis URL ─────────────────

_redis_pools: dict[str, redis.ConnectionPool] = {}


def get_redis_pool(settings: Settings) -> redis.ConnectionPool:
    """Return the ``ConnectionPool`` for the configured Redis URL.

    Reusing a single pool avoids the overhead of creating
    and tearing down connections per credential read.

    Args:
        settings: Settings carrying ``REDIS_HOST`` / ``REDIS_PORT`` /
            ``REDIS_DB``.

    Returns:
        A shared ``ConnectionPool`` instance.
    """
    url = settings.REDIS_URL
    if url not in _redis_pools:
        _redis_pools[url] = redis.ConnectionPool.from_url(
            url,
            decode_responses=True,
        )
    return _redis_pools[url]


def get_redis_client(settings: Settings) -> redis.Redis:
    """Return a Redis client on the shared pool.

    The caller is responsible for calling ``client.close()``
    when finished.

    Returns:
        A ``redis.Redis`` instance on the shared pool.
    """
    return redis.Redis(connection_pool=get_redis_pool(settings))
