"""Celery implementation of the Dispatcher port.

Each task becomes ``send_task(name, kwargs=payload, countdown=delay,
expires=ttl)``.  ``send_task`` is a blocking broker call, so the batch
is published from a worker thread to keep the event loop free.

Failures propagate: a task that cannot be published fails the flush.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from celery import Celery

from opcontext.domain.operation.models import Task
from opcontext.domain.operation.ports import (
    Dispatcher,
    DispatcherFactory,
    OperationLogger,
)
from opcontext.infra.tracing import traced
from opcontext.schemas.messages import TaskMessage

logger = logging.getLogger(__name__)

_SOURCE = "celery-dispatcher"


class CeleryDispatcher(Dispatcher):
    """Publish task batches to a Celery broker."""

    def __init__(self, app: Celery, log: OperationLogger | None = None) -> None:
        self._app = app
        self._log = log or logger

    def _publish(self, tasks: Sequence[Task]) -> list[str]:
        task_ids: list[str] = []
        for task in tasks:
            message = TaskMessage.from_task(task)
            result = self._app.send_task(
                message.name,
                kwargs=message.payload,
                countdown=message.delay,
                expires=message.ttl,
            )
            task_ids.append(result.id)
        return task_ids

    async def send(self, tasks: Sequence[Task]) -> list[str]:
        """Publish *tasks*; returns the Celery task ids in order."""
        async with traced(self._log, _SOURCE, f"send {len(tasks)} task(s)"):
            return await asyncio.to_thread(self._publish, list(tasks))


class CeleryDispatcherFactory(DispatcherFactory):
    def __init__(self, app: Celery) -> None:
        self._app = app

    def get_client(self, logger: OperationLogger | None = None) -> CeleryDispatcher:
        return CeleryDispatcher(self._app, log=logger)
