"""Ports (abstract interfaces) for the operation domain.

These define WHAT an operation needs from its collaborators without
specifying HOW it's provided.  Concrete implementations live in infra/.

Every port is checked once, with ``isinstance``, when an Operation or
Executor is constructed; nothing is duck-typed per call.
"""

from __future__ import annotations

import abc
import logging
from typing import Any, Sequence

from ..common.uow import Dao
from .models import Notice, Task

OperationLogger = logging.Logger | logging.LoggerAdapter


class Cache(abc.ABC):
    """Key/value cache used by actions (never by the lifecycle itself)."""

    @abc.abstractmethod
    async def get(self, key: str | Sequence[str]) -> Any:
        """Return one value for a key, or a list of values for a list of keys."""

    @abc.abstractmethod
    async def set(self, key: str, value: Any, expires: float | None = None) -> None:
        ...

    @abc.abstractmethod
    async def clear(self, key: str | Sequence[str]) -> None:
        ...


class Notifier(abc.ABC):
    """Deliver notices to a target; one call per target batch."""

    @abc.abstractmethod
    async def send(self, target: str, notices: Sequence[Notice]) -> object:
        ...


class Dispatcher(abc.ABC):
    """Hand tasks to a background worker; one call per batch."""

    @abc.abstractmethod
    async def send(self, tasks: Sequence[Task]) -> object:
        ...


# ── Factories (consumed by the Executor) ────────────────────────────────


class DatabaseFactory(abc.ABC):
    @abc.abstractmethod
    def get_client(self, logger: OperationLogger | None = None) -> Dao:
        ...


class CacheFactory(abc.ABC):
    @abc.abstractmethod
    def get_client(self, logger: OperationLogger | None = None) -> Cache:
        ...


class NotifierFactory(abc.ABC):
    @abc.abstractmethod
    def get_client(self, logger: OperationLogger | None = None) -> Notifier:
        ...


class DispatcherFactory(abc.ABC):
    @abc.abstractmethod
    def get_client(self, logger: OperationLogger | None = None) -> Dispatcher:
        ...
