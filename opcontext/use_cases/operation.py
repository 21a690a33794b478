"""Operation — a request-scoped unit of work.

An operation runs an ordered pipeline of actions against injected
collaborators and owns the side effects those actions register:

  1. ``execute()`` moves the operation from INITIALIZED to STARTED
  2. Actions run strictly in sequence; each receives the previous result
  3. The data-access service is committed (or rolled back on failure)
  4. The operation is SEALED; no further deferrals are accepted
  5. Deferred actions run concurrently with their merged inputs
  6. Pending tasks and notices are flushed, one batch per collaborator
     and per notice target
  7. The operation is CLOSED and the final result is returned

A failure in steps 2-3 rolls back and jumps straight to CLOSED; steps
4-6 are skipped and the original error propagates unchanged.

The operation depends ONLY on domain ports — never on SQLAlchemy,
Redis, Celery, or any other infrastructure.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from opcontext.domain.common.errors import (
    CollaboratorError,
    ConfigurationError,
    ProtocolError,
)
from opcontext.domain.common.uow import Dao, Outcome
from opcontext.domain.operation.actions import Action, as_action
from opcontext.domain.operation.log import default_logger, is_valid_logger
from opcontext.domain.operation.merge import (
    DeferredQueue,
    NoticeBuffers,
    PendingBuffer,
)
from opcontext.domain.operation.models import (
    ActionEnvelope,
    Notice,
    OperationConfig,
    OperationServices,
    OperationState,
    Task,
    validate_transition,
)
from opcontext.domain.operation.ports import (
    Cache,
    Dispatcher,
    Notifier,
    OperationLogger,
)

# Port each configured service must implement.
_SERVICE_PORTS: dict[str, type] = {
    "dao": Dao,
    "cache": Cache,
    "notifier": Notifier,
    "dispatcher": Dispatcher,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _as_list(item_or_items: Any) -> list[Any]:
    if isinstance(item_or_items, (list, tuple)):
        return list(item_or_items)
    return [item_or_items]


def _raise_first_error(results: Iterable[Any]) -> None:
    """Re-raise the first exception returned by ``gather(return_exceptions=True)``."""
    for result in results:
        if isinstance(result, BaseException):
            raise result


def _validate_config(config: OperationConfig) -> None:
    if not isinstance(config, OperationConfig):
        raise ConfigurationError("Operation config is missing or invalid")

    for field_name in ("id", "name", "origin"):
        value = getattr(config, field_name)
        if not isinstance(value, str) or not value.strip():
            raise ConfigurationError(f"Operation {field_name} is missing or invalid")

    if not isinstance(config.actions, (list, tuple)):
        raise ConfigurationError("Operation actions are missing or invalid")


def _validate_services(services: OperationServices) -> None:
    if not isinstance(services, OperationServices):
        raise ConfigurationError("Operation services are invalid")
    for field_name, port in _SERVICE_PORTS.items():
        service = getattr(services, field_name)
        if service is not None and not isinstance(service, port):
            raise ConfigurationError(
                f"{field_name} service must implement {port.__name__}, "
                f"got {type(service).__name__}"
            )


# ---------------------------------------------------------------------------
# Operation
# ---------------------------------------------------------------------------


class Operation:
    """Unit-of-work context and lifecycle state machine.

    The same object is the receiver handed to every action, so actions
    register side effects through it (``defer``, ``notify``,
    ``dispatch``) and reach collaborators through ``dao`` / ``cache``.

    An operation is executed at most once and must not be shared between
    concurrent callers.
    """

    def __init__(
        self,
        config: OperationConfig,
        services: OperationServices | None = None,
        logger: OperationLogger | None = None,
    ) -> None:
        _validate_config(config)
        actions = tuple(as_action(a) for a in config.actions)

        services = services if services is not None else OperationServices()
        _validate_services(services)

        if logger is None:
            logger = default_logger(config.id, config.name)
        elif not is_valid_logger(logger):
            raise ConfigurationError("Operation logger is invalid")

        self._id = config.id
        self._name = config.name
        self._origin = config.origin
        self._timestamp = datetime.now(timezone.utc)
        self._actions: tuple[Action, ...] = actions
        self._services = services
        self._log = logger

        self._deferred = DeferredQueue()
        self._tasks: PendingBuffer[Task] = PendingBuffer()
        self._notices = NoticeBuffers()
        self._state = OperationState.INITIALIZED

    # ── Identity ─────────────────────────────────────────────────────────

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def origin(self) -> str:
        return self._origin

    @property
    def timestamp(self) -> datetime:
        return self._timestamp

    @property
    def log(self) -> OperationLogger:
        return self._log

    # ── State ────────────────────────────────────────────────────────────

    @property
    def state(self) -> OperationState:
        return self._state

    @property
    def is_sealed(self) -> bool:
        return self._state in (OperationState.SEALED, OperationState.CLOSED)

    @property
    def is_closed(self) -> bool:
        return self._state is OperationState.CLOSED

    # ── Services ─────────────────────────────────────────────────────────

    @property
    def services(self) -> OperationServices:
        return self._services

    @property
    def dao(self) -> Dao:
        if self._services.dao is None:
            raise ConfigurationError("Cannot use dao service: dao not configured")
        return self._services.dao

    @property
    def cache(self) -> Cache:
        if self._services.cache is None:
            raise ConfigurationError("Cannot use cache service: cache not configured")
        return self._services.cache

    # ── Pending side effects (read-only views) ───────────────────────────

    @property
    def deferred_actions(self) -> tuple[ActionEnvelope, ...]:
        return tuple(self._deferred)

    @property
    def pending_tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    def pending_notices(self, target: str) -> tuple[Notice, ...]:
        return tuple(self._notices.pending(target))

    # ── Capability surface used by actions ───────────────────────────────

    async def run(self, action: Any, inputs: Any) -> Any:
        """Invoke *action* right away with this operation as its context."""
        return await as_action(action)(inputs, self)

    def defer(self, action: Any, inputs: Any) -> None:
        """Queue *action* to run once the operation is sealed.

        Deferring the same mergeable action again folds the new inputs
        into the queued ones instead of queueing a second call.
        """
        if action is None:
            raise TypeError("Cannot defer an action: action is undefined")
        if self.is_sealed:
            raise ProtocolError("Cannot defer an action: operation already sealed")
        self._deferred.register(as_action(action), inputs)

    async def notify(
        self,
        target: str,
        notice: Notice | Sequence[Notice],
        immediate: bool = False,
    ) -> None:
        """Send notice(s) to *target* now, or buffer them for the flush."""
        if notice is None:
            raise TypeError("Cannot register notice: notice is undefined")
        notifier = self._services.notifier
        if notifier is None:
            raise ProtocolError("Cannot register notice: notifier not configured")
        if self.is_closed:
            raise ProtocolError("Cannot register notice: operation already closed")

        notices = _as_list(notice)
        for item in notices:
            if item.target != target:
                raise ProtocolError(
                    f"Cannot register notice: notice for {item.target!r} "
                    f"sent to target {target!r}"
                )
        if immediate:
            await notifier.send(target, notices)
            return
        for item in notices:
            self._notices.add(target, item)

    async def dispatch(
        self,
        task: Task | Sequence[Task],
        immediate: bool = False,
    ) -> None:
        """Send task(s) to the dispatcher now, or buffer them for the flush."""
        if task is None:
            raise TypeError("Cannot dispatch task: task is undefined")
        dispatcher = self._services.dispatcher
        if dispatcher is None:
            raise ProtocolError("Cannot dispatch task: dispatcher not configured")
        if self.is_closed:
            raise ProtocolError("Cannot dispatch task: operation already closed")

        tasks = _as_list(task)
        if immediate:
            await dispatcher.send(tasks)
            return
        for item in tasks:
            self._tasks.add(item)

    # ── Lifecycle ────────────────────────────────────────────────────────

    def start(self) -> None:
        if self._state is OperationState.CLOSED:
            raise ProtocolError("Cannot execute operation: operation already closed")
        if self._state is not OperationState.INITIALIZED:
            raise ProtocolError("Cannot execute operation: operation already started")
        self._transition(OperationState.STARTED)

    def seal(self) -> None:
        dao = self._services.dao
        if dao is not None and dao.is_active:
            raise ProtocolError("Cannot seal an operation with an active dao")
        self._transition(OperationState.SEALED)

    def close(self) -> None:
        if self._state is not OperationState.CLOSED:
            self._transition(OperationState.CLOSED)

    async def execute(self, inputs: Any = None) -> Any:
        """Run the pipeline, resolve the transaction and flush side effects."""
        self.start()

        result = inputs
        try:
            for action in self._actions:
                result = await self.run_step(action, result)
            await self.commit()
        except BaseException:
            # includes cancellation: the dao is never left active
            try:
                await self.rollback()
            finally:
                self._transition(OperationState.CLOSED)
            raise

        try:
            self.seal()
            await self.run_deferred()
            await self.flush()
        finally:
            self.close()
        return result

    async def commit(self) -> None:
        dao = self._services.dao
        if dao is None:
            return
        if not dao.is_active:
            raise CollaboratorError("dao", "closed outside of the execution cycle")
        await dao.close(Outcome.COMMIT)

    async def rollback(self) -> None:
        dao = self._services.dao
        if dao is not None and dao.is_active:
            self._emit("debug", "Rolling back operation")
            await dao.close(Outcome.ROLLBACK)

    # ── Post-processing ──────────────────────────────────────────────────

    def drain_deferred(self) -> list[ActionEnvelope]:
        return self._deferred.drain()

    async def run_deferred(self) -> None:
        """Invoke every surviving deferred action once, concurrently."""
        envelopes = self.drain_deferred()
        if not envelopes:
            return

        start = time.perf_counter()
        self._emit("debug", "Executing %d deferred action(s)", len(envelopes))
        results = await asyncio.gather(
            *(envelope.action(envelope.inputs, self) for envelope in envelopes),
            return_exceptions=True,
        )
        _raise_first_error(results)
        self._emit(
            "debug",
            "Executed %d deferred action(s) in %d ms",
            len(envelopes),
            _elapsed_ms(start),
        )

    async def flush(self) -> None:
        """Send pending tasks and notices, one batch per collaborator/target.

        Buffers are drained before the sends are awaited; anything
        registered while a batch is in flight goes out in the next pass.
        """
        while self._tasks or self._notices:
            tasks = self._tasks.drain()
            notices = self._notices.drain()

            sends = []
            if tasks:
                sends.append(self._services.dispatcher.send(tasks))
            for target, batch in notices.items():
                sends.append(self._services.notifier.send(target, batch))

            start = time.perf_counter()
            self._emit(
                "debug",
                "Flushing %d task(s) and %d notice batch(es)",
                len(tasks),
                len(notices),
            )
            _raise_first_error(await asyncio.gather(*sends, return_exceptions=True))
            self._emit("debug", "Flushed side effects in %d ms", _elapsed_ms(start))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _transition(self, target: OperationState) -> None:
        validate_transition(self._state, target)
        self._state = target

    async def run_step(self, action: Action, inputs: Any) -> Any:
        """Invoke one pipeline step, logging its boundaries and duration."""
        start = time.perf_counter()
        self._emit("debug", "Executing %s action", action.name)
        result = await action(inputs, self)
        self._emit("debug", "Executed %s action in %d ms", action.name, _elapsed_ms(start))
        return result

    def _emit(self, level: str, msg: str, *args: Any) -> None:
        # logging must never change the lifecycle outcome
        try:
            getattr(self._log, level)(msg, *args)
        except Exception:
            pass

    def __repr__(self) -> str:
        return f"<Operation {self._name} id={self._id} state={self._state.value}>"
