"""Domain models for the operation bounded context.

Pure value objects and enums describing the operation lifecycle and the
side effects (tasks, notices) an operation accumulates — independently
of any infrastructure (ORM, Redis, Celery).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, Self, Sequence, runtime_checkable

from ..common.errors import InvalidTransitionError

if TYPE_CHECKING:
    from ..common.uow import Dao
    from .actions import Action
    from .ports import Cache, Dispatcher, Notifier


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class OperationState(str, Enum):
    """Lifecycle states of an operation."""

    INITIALIZED = "initialized"
    STARTED = "started"
    SEALED = "sealed"
    CLOSED = "closed"


# ---------------------------------------------------------------------------
# State Machine
# ---------------------------------------------------------------------------


_VALID_TRANSITIONS: dict[OperationState, frozenset[OperationState]] = {
    OperationState.INITIALIZED: frozenset({OperationState.STARTED}),
    # STARTED -> CLOSED is the rollback path: sealing is skipped
    OperationState.STARTED: frozenset({OperationState.SEALED, OperationState.CLOSED}),
    OperationState.SEALED: frozenset({OperationState.CLOSED}),
    OperationState.CLOSED: frozenset(),
}


def validate_transition(current: OperationState, target: OperationState) -> None:
    """Raise InvalidTransitionError if *current* → *target* is illegal."""
    allowed = _VALID_TRANSITIONS.get(current, frozenset())
    if target not in allowed:
        raise InvalidTransitionError(current, target)


# ---------------------------------------------------------------------------
# Side effects
# ---------------------------------------------------------------------------


@runtime_checkable
class MergeableItem(Protocol):
    """Anything that knows how to fold a same-kind instance into itself.

    ``merge`` returns the combined item, or ``None`` when the two cannot
    be combined.
    """

    def merge(self, other: Self) -> Self | None:
        ...


@dataclass(frozen=True)
class Task:
    """A named unit of asynchronous work handed to the dispatcher.

    ``delay`` and ``ttl`` are scheduling hints in seconds.  Subclasses
    override ``merge`` to collapse duplicate work.
    """

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    delay: float | None = None
    ttl: float | None = None

    def merge(self, other: Task) -> Task | None:
        return None


@dataclass(frozen=True)
class Notice:
    """An event addressed to a notifier target.

    Subclasses override ``merge`` to collapse duplicate events.
    """

    target: str
    payload: dict[str, Any] = field(default_factory=dict)

    def merge(self, other: Notice) -> Notice | None:
        return None


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OperationConfig:
    """Identity and pipeline of an operation."""

    id: str
    name: str
    origin: str
    actions: Sequence[Action] = ()


@dataclass(frozen=True)
class OperationServices:
    """Collaborators injected into an operation; each one is optional."""

    dao: Dao | None = None
    cache: Cache | None = None
    notifier: Notifier | None = None
    dispatcher: Dispatcher | None = None


@dataclass(eq=False)
class ActionEnvelope:
    """A deferred action paired with its accumulated inputs.

    Mutable: merging replaces ``inputs`` in place.
    """

    action: Action
    inputs: Any
