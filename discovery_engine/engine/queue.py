"""Ordered discovery items with a forward-only cursor."""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from typing import Optional, Union

from discovery_engine.domain.enums import ItemStatus
from discovery_engine.domain.models import DiscoveryItem

ItemListener = Callable[[int, DiscoveryItem], None]
AdvanceHook = Callable[[int], None]


class _QueueExhausted:
    """Returned by current() once the cursor has passed the last item."""

    _instance: Optional["_QueueExhausted"] = None

    def __new__(cls) -> "_QueueExhausted":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "QUEUE_EXHAUSTED"


QUEUE_EXHAUSTED = _QueueExhausted()

CurrentItem = Union[DiscoveryItem, _QueueExhausted]


class DiscoveryQueue:
    """Holds items in suggestion order and the user's cursor.

    Items are immutable; every status change swaps the stored item under
    the queue lock, so readers always see a whole item. Once closed, all
    state-mutating calls become no-ops.
    """

    def __init__(self, items: Sequence[DiscoveryItem], *, prefetch_window: int = 2):
        if prefetch_window < 0:
            raise ValueError("prefetch_window must be >= 0")
        self._items: list[DiscoveryItem] = list(items)
        self._cursor = 0
        self._prefetch_window = prefetch_window
        self._lock = threading.RLock()
        self._closed = False
        self._listeners: list[ItemListener] = []
        self._advance_hooks: list[AdvanceHook] = []

    @property
    def prefetch_window(self) -> int:
        return self._prefetch_window

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: ItemListener) -> None:
        """Called with (index, new_item) after every status change, under the queue lock."""
        self._listeners.append(listener)

    def add_advance_hook(self, hook: AdvanceHook) -> None:
        """Called with the new cursor after every successful advance."""
        self._advance_hooks.append(hook)

    # ── navigation ────────────────────────────────────

    def current(self) -> CurrentItem:
        with self._lock:
            if self._cursor >= len(self._items):
                return QUEUE_EXHAUSTED
            return self._items[self._cursor]

    def advance(self) -> CurrentItem:
        with self._lock:
            if self._closed or self._cursor >= len(self._items):
                return self.current()
            self._cursor += 1
            cursor = self._cursor
        for hook in list(self._advance_hooks):
            hook(cursor)
        return self.current()

    def total(self) -> int:
        return len(self._items)

    def position(self) -> int:
        with self._lock:
            return self._cursor

    def is_finished(self) -> bool:
        with self._lock:
            return self._cursor >= len(self._items)

    def items(self) -> list[DiscoveryItem]:
        with self._lock:
            return list(self._items)

    def item(self, index: int) -> DiscoveryItem:
        with self._lock:
            return self._items[index]

    def window_range(self) -> range:
        """Inclusive [cursor, cursor + window], clipped to the queue."""
        with self._lock:
            end = min(self._cursor + self._prefetch_window + 1, len(self._items))
            return range(self._cursor, end)

    # ── item state ────────────────────────────────────

    def claim_for_validation(self, index: int) -> Optional[DiscoveryItem]:
        """Flip a pending item to validating. None when closed or not pending."""
        with self._lock:
            if self._closed or self._items[index].status != ItemStatus.PENDING:
                return None
            return self._swap(index, self._items[index].start_validation())

    def apply(self, index: int, transform: Callable[[DiscoveryItem], DiscoveryItem]) -> Optional[DiscoveryItem]:
        """Replace item `index` with transform(item). None when the queue is closed."""
        with self._lock:
            if self._closed:
                return None
            return self._swap(index, transform(self._items[index]))

    def _swap(self, index: int, new_item: DiscoveryItem) -> DiscoveryItem:
        self._items[index] = new_item
        for listener in list(self._listeners):
            listener(index, new_item)
        return new_item

    def close(self) -> None:
        with self._lock:
            self._closed = True

    def count_by_status(self) -> dict[str, int]:
        counts = {status.value: 0 for status in ItemStatus}
        for item in self.items():
            counts[item.status.value] += 1
        return counts
