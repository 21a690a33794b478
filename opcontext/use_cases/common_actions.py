"""Built-in actions most pipelines defer.

* :data:`clear_cache` — invalidate cache keys; merges by set union.
* :data:`dispatch_tasks` — send tasks to the dispatcher.
* :data:`notify_targets` — send notices, grouped by target.

Task and notice inputs merge by folding each incoming item into the
first existing item it combines with (see ``combine_items``), so
deferring the same follow-up twice results in a single send.
"""

from __future__ import annotations

from typing import Any, Iterable, TypeVar

from opcontext.domain.operation.actions import action
from opcontext.domain.operation.merge import combine_items
from opcontext.domain.operation.models import MergeableItem, Notice, Task

T = TypeVar("T", bound=MergeableItem)


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def merge_item_lists(new: T | list[T] | None, existing: T | list[T] | None) -> list[T]:
    """Fold the items of *new* into *existing*; unmatched items are appended."""
    merged = _as_list(existing)
    for item in _as_list(new):
        for i, current in enumerate(merged):
            combined = combine_items(current, item)
            if combined is not None:
                merged[i] = combined
                break
        else:
            merged.append(item)
    return merged


def _as_keys(keys: str | Iterable[str] | None) -> set[str]:
    if keys is None:
        return set()
    if isinstance(keys, str):
        return {keys}
    return set(keys)


def merge_cache_keys(
    new: str | Iterable[str] | None, existing: str | Iterable[str] | None
) -> set[str]:
    return _as_keys(existing) | _as_keys(new)


# ── Actions ──────────────────────────────────────────────────────────────


@action(merge=merge_cache_keys)
async def clear_cache(keys: str | Iterable[str] | None, context: Any) -> None:
    keys = sorted(_as_keys(keys))
    if keys:
        await context.cache.clear(keys)


@action(merge=merge_item_lists)
async def dispatch_tasks(tasks: Task | list[Task] | None, context: Any) -> None:
    tasks = _as_list(tasks)
    if tasks:
        await context.dispatch(tasks, immediate=True)


@action(merge=merge_item_lists)
async def notify_targets(notices: Notice | list[Notice] | None, context: Any) -> None:
    by_target: dict[str, list[Notice]] = {}
    for notice in _as_list(notices):
        by_target.setdefault(notice.target, []).append(notice)
    for target, batch in by_target.items():
        await context.notify(target, batch, immediate=True)
