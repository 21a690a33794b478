"""Executor — drive operations built from collaborator factories.

The Executor is an alternative entry point to the operation lifecycle
for callers that supply the pipeline per call rather than at
construction::

    executor = Executor(database=SqlAlchemyDatabase(session_factory))
    context = await executor.create_context(config)
    try:
        result = await executor.execute(actions, inputs, context)
    except Exception as error:
        await executor.close_context(context, error)
        raise
    await executor.close_context(context)

``run()`` wraps exactly that sequence.

An action may *return* an exception instead of raising it.  The
executor commits, seals and then raises it, marked so that
``close_context`` still runs deferred actions and flushes side effects:
the work is durable even though the caller sees an error.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from opcontext.domain.common.errors import ConfigurationError
from opcontext.domain.operation.actions import as_action
from opcontext.domain.operation.models import (
    OperationConfig,
    OperationServices,
    OperationState,
)
from opcontext.domain.operation.ports import (
    CacheFactory,
    DatabaseFactory,
    DispatcherFactory,
    NotifierFactory,
    OperationLogger,
)
from opcontext.use_cases.operation import Operation

logger = logging.getLogger(__name__)

_CONTINUE_EXECUTION = "_opcontext_continue_execution"


def mark_continue_execution(error: BaseException) -> BaseException:
    """Flag *error* so ``close_context`` still post-processes the operation."""
    setattr(error, _CONTINUE_EXECUTION, True)
    return error


def continues_execution(error: BaseException | None) -> bool:
    return error is not None and getattr(error, _CONTINUE_EXECUTION, False) is True


def _check_factory(name: str, factory: object, port: type, required: bool = False) -> None:
    if factory is None:
        if required:
            raise ConfigurationError(f"Cannot create an Executor: {name} is undefined")
        return
    if not isinstance(factory, port):
        raise ConfigurationError(
            f"Cannot create an Executor: {name} factory must implement {port.__name__}"
        )


class Executor:
    """Create, run and tear down operations around a set of service factories."""

    def __init__(
        self,
        database: DatabaseFactory,
        cache: CacheFactory | None = None,
        notifier: NotifierFactory | None = None,
        dispatcher: DispatcherFactory | None = None,
        logger: OperationLogger | None = None,
    ) -> None:
        _check_factory("database", database, DatabaseFactory, required=True)
        _check_factory("cache", cache, CacheFactory)
        _check_factory("notifier", notifier, NotifierFactory)
        _check_factory("dispatcher", dispatcher, DispatcherFactory)

        self.database = database
        self.cache = cache
        self.notifier = notifier
        self.dispatcher = dispatcher
        self._logger = logger

    async def create_context(
        self,
        config: OperationConfig,
        logger: OperationLogger | None = None,
    ) -> Operation:
        """Build an operation with one fresh client from each factory."""
        logger = logger or self._logger
        services = OperationServices(
            dao=self.database.get_client(logger),
            cache=self.cache.get_client(logger) if self.cache else None,
            notifier=self.notifier.get_client(logger) if self.notifier else None,
            dispatcher=self.dispatcher.get_client(logger) if self.dispatcher else None,
        )
        return Operation(config, services, logger)

    async def execute(
        self,
        actions: Sequence[Any],
        inputs: Any,
        context: Operation,
    ) -> Any:
        """Run *actions* in order on *context*, then commit and seal."""
        pipeline = [as_action(a) for a in actions]
        context.start()

        result = inputs
        for action in pipeline:
            result = await context.run_step(action, result)

        # raises when an action closed the dao
        await context.commit()
        context.seal()

        if isinstance(result, BaseException):
            raise mark_continue_execution(result)
        return result

    async def close_context(
        self,
        context: Operation,
        error: BaseException | None = None,
    ) -> None:
        """Tear *context* down: roll back on failure, otherwise post-process."""
        if error is not None and not continues_execution(error):
            try:
                await context.rollback()
            finally:
                context.close()
            return

        try:
            if context.state is OperationState.STARTED:
                context.seal()
            await context.run_deferred()
            await context.flush()
        finally:
            context.close()

    async def run(self, config: OperationConfig, inputs: Any = None) -> Any:
        """Create a context, execute ``config.actions`` on it and close it."""
        context = await self.create_context(config)
        try:
            result = await self.execute(config.actions, inputs, context)
        except BaseException as error:
            logger.debug("Operation %s failed: %s", context.id, error)
            await self.close_context(context, error)
            raise
        await self.close_context(context)
        return result
