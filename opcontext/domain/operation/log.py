"""Default logger for operations.

Operations log through a ``logging.LoggerAdapter`` over one process-wide
logger.  Handlers and levels are configured once at startup (see
``opcontext.config.logging``); nothing here mutates global state.
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping

OPERATION_LOGGER_NAME = "opcontext.operation"

_REQUIRED_METHODS = ("debug", "info", "warning", "error")


class OperationLogAdapter(logging.LoggerAdapter):
    """Prefix every message with the operation name and id."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        extra = self.extra or {}
        return f"[{extra.get('operation_name')}:{extra.get('operation_id')}] {msg}", kwargs


def default_logger(operation_id: str, operation_name: str) -> OperationLogAdapter:
    return OperationLogAdapter(
        logging.getLogger(OPERATION_LOGGER_NAME),
        {"operation_id": operation_id, "operation_name": operation_name},
    )


def is_valid_logger(logger: object) -> bool:
    """True when *logger* exposes the methods operations call."""
    return all(callable(getattr(logger, name, None)) for name in _REQUIRED_METHODS)
