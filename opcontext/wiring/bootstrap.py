"""Dependency injection bootstrap — the single place that binds ports to adapters.

Callers never import concrete implementations directly; they depend on
the Executor returned here, whose factories hand every operation its
own DAO, cache, notifier and dispatcher clients.

Example usage::

    from opcontext.wiring.bootstrap import get_executor

    result = await get_executor().run(
        OperationConfig(id=request_id, name="create-order", origin="api",
                        actions=[validate, persist]),
        payload,
    )
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from opcontext.config import settings
from opcontext.infra.cache.redis_cache import RedisCacheFactory
from opcontext.infra.cache.redis_pool import get_redis_client
from opcontext.infra.db.dao import SqlAlchemyDatabase
from opcontext.infra.notifier.redis_notifier import RedisNotifierFactory
from opcontext.infra.tasks.celery_dispatcher import CeleryDispatcherFactory
from opcontext.use_cases.executor import Executor


# ── Executor ─────────────────────────────────────────────────────────────

_executor: Executor | None = None


def get_executor() -> Executor:
    """Return a singleton Executor wired to SQLAlchemy, Redis and Celery."""
    global _executor
    if _executor is None:
        from opcontext.infra.tasks.celery_app import celery_app

        engine = create_async_engine(settings.database_url, echo=settings.database_echo)
        _executor = Executor(
            database=SqlAlchemyDatabase(
                async_sessionmaker(engine, expire_on_commit=False)
            ),
            cache=RedisCacheFactory(
                get_redis_client(settings.cache_redis_db),
                prefix=settings.cache_key_prefix,
                default_ttl=settings.cache_default_ttl,
            ),
            notifier=RedisNotifierFactory(
                get_redis_client(settings.notifier_redis_db),
                channel_prefix=settings.notifier_channel_prefix,
            ),
            dispatcher=CeleryDispatcherFactory(celery_app),
        )
    return _executor


def reset_executor() -> None:
    """Drop the singleton (for tests or reconfiguration)."""
    global _executor
    _executor = None
