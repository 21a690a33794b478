"""Redis implementation of the Cache port.

Values are stored as JSON under ``<prefix><key>``.  ``get`` and
``clear`` accept a single key or a list of keys, mirroring the port.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

from redis.asyncio import Redis

from opcontext.domain.operation.ports import Cache, CacheFactory, OperationLogger
from opcontext.infra.tracing import traced

logger = logging.getLogger(__name__)

_SOURCE = "redis-cache"


class RedisCache(Cache):
    """JSON key/value cache over an async Redis client."""

    def __init__(
        self,
        client: Redis,
        *,
        prefix: str = "",
        default_ttl: int | None = None,
        log: OperationLogger | None = None,
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._default_ttl = default_ttl
        self._log = log or logger

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str | Sequence[str]) -> Any:
        if isinstance(key, str):
            async with traced(self._log, _SOURCE, "get"):
                raw = await self._client.get(self._key(key))
            return json.loads(raw) if raw is not None else None

        keys = list(key)
        if not keys:
            return []
        async with traced(self._log, _SOURCE, "mget"):
            raws = await self._client.mget([self._key(k) for k in keys])
        return [json.loads(raw) if raw is not None else None for raw in raws]

    async def set(self, key: str, value: Any, expires: float | None = None) -> None:
        ttl = expires if expires is not None else self._default_ttl
        async with traced(self._log, _SOURCE, "set"):
            await self._client.set(
                self._key(key),
                json.dumps(value),
                ex=int(ttl) if ttl else None,
            )

    async def clear(self, key: str | Sequence[str]) -> None:
        keys = [key] if isinstance(key, str) else list(key)
        if not keys:
            return
        async with traced(self._log, _SOURCE, "clear"):
            await self._client.delete(*(self._key(k) for k in keys))


class RedisCacheFactory(CacheFactory):
    """Hand out RedisCache clients sharing one Redis connection pool."""

    def __init__(
        self,
        client: Redis,
        *,
        prefix: str = "",
        default_ttl: int | None = None,
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._default_ttl = default_ttl

    def get_client(self, logger: OperationLogger | None = None) -> RedisCache:
        return RedisCache(
            self._client,
            prefix=self._prefix,
            default_ttl=self._default_ttl,
            log=logger,
        )
