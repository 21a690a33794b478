"""Action — a single pipeline step.

An action is a callable ``(inputs, context) -> result`` (sync or async)
with an optional merge rule for its own inputs.  The merge rule is used
when the same action is deferred more than once::

    @action(merge=lambda new, old: old | new)
    async def clear_cache(keys, context):
        await context.cache.clear(sorted(keys))

Identity matters: two deferrals are merge candidates only when they
reference the same ``Action`` object.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable

from ..common.errors import ConfigurationError

MergeRule = Callable[[Any, Any], Any]


class Action:
    """Callable wrapper pairing a step function with its merge rule."""

    __slots__ = ("fn", "merge", "name")

    def __init__(
        self,
        fn: Callable[..., Any],
        merge: MergeRule | None = None,
        name: str | None = None,
    ) -> None:
        if not callable(fn):
            raise ConfigurationError(f"Action must be callable, got {type(fn).__name__}")
        if merge is not None and not callable(merge):
            raise ConfigurationError("Action merge rule must be callable")
        self.fn = fn
        self.merge = merge
        self.name = name or getattr(fn, "__name__", type(fn).__name__)

    async def __call__(self, inputs: Any, context: Any) -> Any:
        result = self.fn(inputs, context)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        merge = " mergeable" if self.merge is not None else ""
        return f"<Action {self.name}{merge}>"


def action(
    fn: Callable[..., Any] | None = None,
    *,
    merge: MergeRule | None = None,
    name: str | None = None,
) -> Any:
    """Decorator turning a function into an :class:`Action`.

    Usable bare (``@action``) or with arguments
    (``@action(merge=rule)``).
    """
    if fn is None:
        return lambda f: Action(f, merge=merge, name=name)
    return Action(fn, merge=merge, name=name)


def as_action(obj: Any) -> Action:
    """Return *obj* as an Action, wrapping plain callables once."""
    if isinstance(obj, Action):
        return obj
    if not callable(obj):
        raise ConfigurationError(
            f"Operation action is not callable: {obj!r}"
        )
    return Action(obj)
