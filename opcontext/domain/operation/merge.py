"""Merge/dedup engine for deferred actions, pending tasks and notices.

Business steps may request the same follow-up effect many times during
one pipeline run.  Instead of executing every registration, the
structures below accumulate *inputs* and fold them together lazily:

* :class:`DeferredQueue` folds inputs of the same action using the
  action's merge rule.
* :class:`PendingBuffer` folds same-kind items (tasks, notices) using
  the items' own ``merge`` method.
* :class:`NoticeBuffers` keeps one ``PendingBuffer`` per notice target.

Nothing here imposes *how* two values combine; it only decides *when*
a collapse happens.  Entries absorbed by a merge are removed by key,
never tombstoned.
"""

from __future__ import annotations

import itertools
from typing import Any, Generic, Iterator, TypeVar

from .actions import Action
from .models import ActionEnvelope, MergeableItem, Notice

T = TypeVar("T", bound=MergeableItem)


def combine_items(left: T | None, right: T | None) -> T | None:
    """Combine two same-kind items, asking each side in turn.

    Returns ``None`` when neither item accepts the other.
    """
    if left is right:
        return left
    if left is None:
        return right
    if right is None:
        return left
    merged = left.merge(right)
    if merged is None:
        merged = right.merge(left)
    return merged


# ── Deferred actions ─────────────────────────────────────────────────────


class DeferredQueue:
    """Ordered queue of deferred-action envelopes.

    Envelopes are also indexed by action identity so a registration only
    inspects envelopes of the same action.
    """

    def __init__(self) -> None:
        self._envelopes: list[ActionEnvelope] = []
        self._by_action: dict[Action, list[ActionEnvelope]] = {}

    def __len__(self) -> int:
        return len(self._envelopes)

    def __iter__(self) -> Iterator[ActionEnvelope]:
        return iter(self._envelopes)

    def register(self, action: Action, inputs: Any) -> ActionEnvelope:
        """Fold *inputs* into an existing envelope or append a new one."""
        candidates = self._by_action.setdefault(action, [])
        if action.merge is not None:
            for envelope in candidates:
                merged = action.merge(inputs, envelope.inputs)
                if merged is not None:
                    envelope.inputs = merged
                    return envelope

        envelope = ActionEnvelope(action=action, inputs=inputs)
        candidates.append(envelope)
        self._envelopes.append(envelope)
        return envelope

    def drain(self) -> list[ActionEnvelope]:
        """Return every envelope in registration order and empty the queue."""
        envelopes, self._envelopes = self._envelopes, []
        self._by_action = {}
        return envelopes


# ── Pending items ────────────────────────────────────────────────────────


class PendingBuffer(Generic[T]):
    """Insertion-ordered buffer of mergeable items with O(1) removal."""

    def __init__(self) -> None:
        self._items: dict[int, T] = {}
        self._keys = itertools.count()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items.values())

    def add(self, item: T) -> T:
        """Absorb every pending item that *item* can merge with, then append.

        Returns the item actually stored (possibly a merged one).
        """
        for key, existing in list(self._items.items()):
            merged = item.merge(existing)
            if merged is not None:
                del self._items[key]
                item = merged
        self._items[next(self._keys)] = item
        return item

    def drain(self) -> list[T]:
        """Return the pending items and empty the buffer atomically."""
        items = list(self._items.values())
        self._items = {}
        return items


class NoticeBuffers:
    """Pending notices grouped by target, in first-registration order."""

    def __init__(self) -> None:
        self._targets: dict[str, PendingBuffer[Notice]] = {}

    def __bool__(self) -> bool:
        return any(self._targets.values())

    def __len__(self) -> int:
        return sum(len(buffer) for buffer in self._targets.values())

    def add(self, target: str, notice: Notice) -> Notice:
        buffer = self._targets.get(target)
        if buffer is None:
            buffer = self._targets[target] = PendingBuffer()
        return buffer.add(notice)

    def pending(self, target: str) -> list[Notice]:
        buffer = self._targets.get(target)
        return list(buffer) if buffer is not None else []

    def drain(self) -> dict[str, list[Notice]]:
        """Return ``{target: notices}`` and clear every buffer atomically."""
        targets, self._targets = self._targets, {}
        return {target: buffer.drain() for target, buffer in targets.items() if buffer}
