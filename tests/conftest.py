"""
Shared pytest configuration for opcontext tests.

Unit tests never touch a real database, Redis or Celery broker: every
collaborator is an in-memory fake from ``tests/unit/operation_fakes.py``
or a ``unittest.mock`` double.
"""
import logging

import pytest


@pytest.fixture(autouse=True)
def _debug_operation_logs(caplog):
    """Capture operation debug logs so tests can assert on them."""
    caplog.set_level(logging.DEBUG, logger="opcontext")
    yield
