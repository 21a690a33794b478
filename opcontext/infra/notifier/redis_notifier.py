"""Redis pub/sub implementation of the Notifier port.

Each target batch is published as ONE message: a JSON array of
:class:`~opcontext.schemas.messages.NoticeMessage` on channel
``<prefix><target>``.  Subscribers are responsible for ordering within
the batch.
"""

from __future__ import annotations

import json
import logging
from typing import Sequence

from redis.asyncio import Redis

from opcontext.domain.operation.models import Notice
from opcontext.domain.operation.ports import Notifier, NotifierFactory, OperationLogger
from opcontext.infra.tracing import traced
from opcontext.schemas.messages import NoticeMessage

logger = logging.getLogger(__name__)

_SOURCE = "redis-notifier"


class RedisNotifier(Notifier):
    """Publish notice batches to Redis channels."""

    def __init__(
        self,
        client: Redis,
        *,
        channel_prefix: str = "",
        log: OperationLogger | None = None,
    ) -> None:
        self._client = client
        self._channel_prefix = channel_prefix
        self._log = log or logger

    def channel(self, target: str) -> str:
        return f"{self._channel_prefix}{target}"

    async def send(self, target: str, notices: Sequence[Notice]) -> int:
        """Publish *notices*; returns the number of subscribers reached."""
        body = json.dumps(
            [NoticeMessage.from_notice(n).model_dump(mode="json") for n in notices]
        )
        async with traced(self._log, _SOURCE, f"publish {target}"):
            return await self._client.publish(self.channel(target), body)


class RedisNotifierFactory(NotifierFactory):
    def __init__(self, client: Redis, *, channel_prefix: str = "") -> None:
        self._client = client
        self._channel_prefix = channel_prefix

    def get_client(self, logger: OperationLogger | None = None) -> RedisNotifier:
        return RedisNotifier(
            self._client, channel_prefix=self._channel_prefix, log=logger
        )
