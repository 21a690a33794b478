"""Timing log line shared by the collaborator adapters.

Each adapter reports every call it makes to its backend as::

    [redis-cache]: executed [clear] in 3 ms
    [celery-dispatcher]: failed to execute [send] in 12 ms
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

_default_logger = logging.getLogger(__name__)


def trace(
    logger: logging.Logger | logging.LoggerAdapter | None,
    source: str,
    command: str,
    duration_ms: int,
    success: bool,
) -> None:
    logger = logger or _default_logger
    if success:
        logger.info("[%s]: executed [%s] in %d ms", source, command, duration_ms)
    else:
        logger.info("[%s]: failed to execute [%s] in %d ms", source, command, duration_ms)


@asynccontextmanager
async def traced(
    logger: logging.Logger | logging.LoggerAdapter | None,
    source: str,
    command: str,
) -> AsyncIterator[None]:
    """Trace the wrapped block; exceptions are traced as failures and re-raised."""
    start = time.perf_counter()
    try:
        yield
    except Exception:
        trace(logger, source, command, int((time.perf_counter() - start) * 1000), False)
        raise
    trace(logger, source, command, int((time.perf_counter() - start) * 1000), True)
