"""Celery application used by the dispatcher adapter.

Only the producer side lives here: tasks are sent by name, so worker
code does not have to be importable from this package.
"""
from celery import Celery

from ...config import settings

celery_app = Celery(
    "opcontext",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
)
