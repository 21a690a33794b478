"""
Shared async Redis connection pools for the cache and notifier adapters.

Provides one singleton connection pool per Redis database, so every
operation's cache/notifier client reuses connections instead of opening
new ones.

Pool configuration:
- max_connections: settings.redis_max_connections (default: 10)
- socket_connect_timeout: 2s (fast fail on connection issues)
- socket_timeout: 2s (prevent long-running operations from blocking)
"""
import logging
from typing import Dict

from redis.asyncio import ConnectionPool, Redis

from ...config import settings

logger = logging.getLogger(__name__)

# Module-level pool instances (singletons keyed by db number)
_pools: Dict[int, ConnectionPool] = {}


def get_redis_pool(db: int) -> ConnectionPool:
    """
    Get the shared Redis connection pool for *db* (singleton).

    Creates the pool on first call with settings from config.  Connections
    are opened lazily, so this never touches the network.
    """
    pool = _pools.get(db)
    if pool is not None:
        return pool

    pool = ConnectionPool(
        host=settings.redis_host,
        port=settings.redis_port,
        db=db,
        max_connections=settings.redis_max_connections,
        socket_connect_timeout=2,
        socket_timeout=2,
        decode_responses=True,
    )
    _pools[db] = pool
    logger.info(
        "Redis connection pool initialized: %s:%s/db%s (max_connections=%d)",
        settings.redis_host, settings.redis_port, db, settings.redis_max_connections,
    )
    return pool


def get_redis_client(db: int) -> Redis:
    """
    Get a Redis client using the shared connection pool for *db*.

    Usage:
        client = get_redis_client(settings.cache_redis_db)
        await client.set("key", "value")
    """
    return Redis(connection_pool=get_redis_pool(db))


async def reset_pool() -> None:
    """
    Reset every connection pool (for testing or reconnection).

    Disconnects all pooled connections and clears the singletons.  The
    next call to get_redis_pool() creates a fresh pool.
    """
    pools = list(_pools.values())
    _pools.clear()
    for pool in pools:
        try:
            await pool.disconnect()
        except Exception as e:
            logger.warning(f"Error disconnecting pool: {e}")
    if pools:
        logger.info("Redis connection pools disconnected")
