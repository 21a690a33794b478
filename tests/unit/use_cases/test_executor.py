"""Unit tests for the Executor entry point."""

import pytest

from opcontext.domain.common.errors import (
    CollaboratorError,
    ConfigurationError,
    ProtocolError,
)
from opcontext.domain.common.uow import Outcome
from opcontext.domain.operation.models import Notice, OperationState, Task
from opcontext.use_cases.executor import (
    Executor,
    continues_execution,
    mark_continue_execution,
)
from opcontext.use_cases.operation import Operation

from tests.unit.operation_fakes import (
    EventLog,
    FakeCacheFactory,
    FakeDatabase,
    FakeDispatcherFactory,
    FakeNotifierFactory,
    RecordingLogger,
    make_config,
)


class ActionFailed(Exception):
    pass


def _executor(events=None, **overrides) -> Executor:
    factories = dict(
        database=FakeDatabase(events),
        cache=FakeCacheFactory(),
        notifier=FakeNotifierFactory(events),
        dispatcher=FakeDispatcherFactory(events),
    )
    factories.update(overrides)
    return Executor(**factories)


# ── Construction ─────────────────────────────────────────────────────────


class TestExecutorConstruction:
    def test_database_is_required(self):
        with pytest.raises(ConfigurationError, match="database is undefined"):
            Executor(database=None)

    def test_only_database_is_enough(self):
        executor = Executor(database=FakeDatabase())

        assert executor.cache is None
        assert executor.notifier is None
        assert executor.dispatcher is None

    @pytest.mark.parametrize("name", ["database", "cache", "notifier", "dispatcher"])
    def test_factories_must_implement_their_port(self, name):
        with pytest.raises(ConfigurationError, match=f"{name} factory must implement"):
            _executor(**{name: object()})


class TestCreateContext:
    @pytest.mark.asyncio
    async def test_context_gets_a_fresh_dao_per_call(self):
        database = FakeDatabase()
        executor = _executor(database=database)

        first = await executor.create_context(make_config(id="op-1"))
        second = await executor.create_context(make_config(id="op-2"))

        assert isinstance(first, Operation)
        assert first.state is OperationState.INITIALIZED
        assert len(database.clients) == 2
        assert first.dao is database.clients[0]
        assert second.dao is database.clients[1]

    @pytest.mark.asyncio
    async def test_context_wires_every_configured_service(self):
        cache, notifier, dispatcher = (
            FakeCacheFactory(),
            FakeNotifierFactory(),
            FakeDispatcherFactory(),
        )
        executor = _executor(cache=cache, notifier=notifier, dispatcher=dispatcher)

        context = await executor.create_context(make_config())

        assert context.cache is cache.client
        assert context.services.notifier is notifier.client
        assert context.services.dispatcher is dispatcher.client

    @pytest.mark.asyncio
    async def test_context_uses_given_logger(self):
        log = RecordingLogger()
        context = await Executor(database=FakeDatabase(), logger=log).create_context(
            make_config()
        )

        assert context.log is log


# ── Execution ────────────────────────────────────────────────────────────


class TestExecutorRun:
    @pytest.mark.asyncio
    async def test_run_returns_final_result(self):
        events = EventLog()
        executor = _executor(events)

        def double(inputs, ctx):
            return inputs * 2

        result = await executor.run(make_config(actions=[double, double]), 3)

        assert result == 12
        assert executor.database.clients[0].closed_with == [Outcome.COMMIT]

    @pytest.mark.asyncio
    async def test_run_post_processes_after_commit(self):
        events = EventLog()
        executor = _executor(events)

        async def deferred(inputs, ctx):
            events.record("deferred")

        async def step(inputs, ctx):
            ctx.defer(deferred, None)
            await ctx.notify("orders", Notice(target="orders"))
            await ctx.dispatch(Task(name="reindex"))
            return inputs

        await executor.run(make_config(actions=[step]), None)

        kinds = events.kinds()
        assert kinds[:2] == ["dao.close", "deferred"]
        assert sorted(kinds[2:]) == ["dispatcher.send", "notifier.send"]

    @pytest.mark.asyncio
    async def test_failure_rolls_back_and_skips_post_processing(self):
        events = EventLog()
        executor = _executor(events)
        error = ActionFailed("nope")

        async def step(inputs, ctx):
            ctx.defer(lambda i, c: events.record("deferred"), None)
            await ctx.notify("orders", Notice(target="orders"))
            raise error

        with pytest.raises(ActionFailed) as exc_info:
            await executor.run(make_config(actions=[step]), None)

        assert exc_info.value is error
        assert events.events == [("dao.close", Outcome.ROLLBACK)]
        assert not continues_execution(error)

    @pytest.mark.asyncio
    async def test_returned_exception_still_commits_and_post_processes(self):
        events = EventLog()
        executor = _executor(events)
        error = ActionFailed("reported")

        async def step(inputs, ctx):
            ctx.defer(lambda i, c: events.record("deferred"), None)
            await ctx.notify("orders", Notice(target="orders"))
            return error

        with pytest.raises(ActionFailed) as exc_info:
            await executor.run(make_config(actions=[step]), None)

        assert exc_info.value is error
        assert continues_execution(error)
        assert events.kinds() == ["dao.close", "deferred", "notifier.send"]
        assert executor.database.clients[0].closed_with == [Outcome.COMMIT]


class TestExecutorManualLifecycle:
    @pytest.mark.asyncio
    async def test_execute_then_close_context(self):
        executor = _executor()
        context = await executor.create_context(make_config())

        result = await executor.execute([lambda i, c: i + 1], 1, context)
        assert result == 2
        assert context.state is OperationState.SEALED

        await executor.close_context(context)
        assert context.is_closed

    @pytest.mark.asyncio
    async def test_dao_closed_by_an_action_is_fatal(self):
        database = FakeDatabase()
        executor = _executor(database=database)
        context = await executor.create_context(make_config())

        def close_dao(inputs, ctx):
            ctx.dao.close_out_of_band()
            return inputs

        with pytest.raises(CollaboratorError, match="closed outside") as exc_info:
            await executor.execute([close_dao], None, context)

        assert context.state is OperationState.STARTED

        await executor.close_context(context, exc_info.value)

        assert database.clients[0].closed_with == []
        assert context.is_closed

    @pytest.mark.asyncio
    async def test_run_surfaces_dao_closed_by_an_action(self):
        deferred = []

        def close_dao(inputs, ctx):
            ctx.defer(lambda i, c: deferred.append(i), "later")
            ctx.dao.close_out_of_band()
            return inputs

        with pytest.raises(CollaboratorError):
            await _executor().run(make_config(actions=[close_dao]), None)

        assert deferred == []

    @pytest.mark.asyncio
    async def test_context_cannot_be_executed_twice(self):
        executor = _executor()
        context = await executor.create_context(make_config())
        await executor.execute([], None, context)

        with pytest.raises(ProtocolError, match="already started"):
            await executor.execute([], None, context)

    @pytest.mark.asyncio
    async def test_close_context_is_idempotent(self):
        executor = _executor()
        context = await executor.create_context(make_config())
        await executor.execute([], None, context)

        await executor.close_context(context)
        await executor.close_context(context)

        assert context.is_closed

    @pytest.mark.asyncio
    async def test_close_context_with_unmarked_error_rolls_back(self):
        database = FakeDatabase()
        executor = _executor(database=database)
        context = await executor.create_context(make_config())
        context.start()

        await executor.close_context(context, ActionFailed("late"))

        assert database.clients[0].closed_with == [Outcome.ROLLBACK]
        assert context.is_closed

    @pytest.mark.asyncio
    async def test_close_context_with_marked_error_seals_started_context(self):
        database = FakeDatabase()
        executor = _executor(database=database)
        context = await executor.create_context(make_config())
        context.start()
        await context.commit()

        await executor.close_context(
            context, mark_continue_execution(ActionFailed("reported"))
        )

        assert database.clients[0].closed_with == [Outcome.COMMIT]
        assert context.is_closed
