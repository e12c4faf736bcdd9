"""Look-ahead validation scheduling."""

from __future__ import annotations

import threading
import time
from collections import defaultdict

from discovery_engine.domain.enums import ItemStatus
from discovery_engine.engine.prefetch import PrefetchScheduler
from discovery_engine.engine.queue import DiscoveryQueue
from tests.fakes import GatedProvider, InstantProvider, make_items

NAMES = ("Louvre", "Sainte-Chapelle", "Luxembourg Gardens", "Eiffel Tower", "Musée d'Orsay")


def _wait_until(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def _scheduler(provider, names=NAMES, window=2):
    queue = DiscoveryQueue(make_items(*names), prefetch_window=window)
    return queue, PrefetchScheduler(queue, provider, "Paris", session_id="s1")


def test_start_dispatches_current_window_and_flips_to_validating():
    provider = GatedProvider()
    queue, scheduler = _scheduler(provider)
    try:
        assert scheduler.start() == [0, 1, 2]
        statuses = [item.status for item in queue.items()]
        assert statuses[:3] == [ItemStatus.VALIDATING] * 3
        assert statuses[3:] == [ItemStatus.PENDING] * 2
    finally:
        provider.release_all()
        scheduler.cancel()


def test_refresh_never_redispatches():
    provider = GatedProvider()
    queue, scheduler = _scheduler(provider)
    try:
        scheduler.start()
        assert scheduler.refresh() == []
        provider.release(*NAMES[:3])
        assert scheduler.wait_idle(timeout=5)
        assert scheduler.refresh() == []
        assert scheduler.dispatched == [0, 1, 2]
    finally:
        provider.release_all()
        scheduler.cancel()


def test_five_items_window_two_scenario():
    provider = GatedProvider(failing=("Sainte-Chapelle",))
    queue, scheduler = _scheduler(provider)
    try:
        scheduler.start()
        provider.release("Louvre", "Sainte-Chapelle", "Luxembourg Gardens")
        assert scheduler.wait_idle(timeout=5)

        items = queue.items()
        assert items[0].status == ItemStatus.VALIDATED
        assert items[1].status == ItemStatus.ERROR
        assert "Sainte-Chapelle" in items[1].error_message
        assert items[2].status == ItemStatus.VALIDATED
        assert items[3].status == ItemStatus.PENDING

        # advance dispatches exactly the newly exposed item
        queue.advance()
        assert scheduler.dispatched == [0, 1, 2, 3]
        assert queue.item(3).status == ItemStatus.VALIDATING

        queue.advance()
        assert scheduler.dispatched == [0, 1, 2, 3, 4]

        provider.release("Eiffel Tower", "Musée d'Orsay")
        assert scheduler.wait_idle(timeout=5)
        assert queue.count_by_status() == {"pending": 0, "validating": 0, "validated": 4, "error": 1}
        assert sorted(provider.started) == sorted(NAMES)
    finally:
        provider.release_all()
        scheduler.cancel()


def test_window_bounds_dispatch_at_creation():
    provider = GatedProvider()
    queue, scheduler = _scheduler(provider, window=1)
    try:
        assert scheduler.start() == [0, 1]
        assert _wait_until(lambda: len(provider.started) == 2)
        assert sorted(provider.started) == ["Louvre", "Sainte-Chapelle"]
        assert provider.max_concurrent <= 2
    finally:
        provider.release_all()
        scheduler.cancel()


def test_item_under_cursor_starts_while_passed_items_still_run():
    provider = GatedProvider()
    queue, scheduler = _scheduler(provider, window=1)
    try:
        scheduler.start()
        for _ in range(3):
            queue.advance()

        assert queue.position() == 3
        # Louvre .. Eiffel Tower are all still blocked in the provider
        assert _wait_until(lambda: "Eiffel Tower" in provider.started)
        assert _wait_until(lambda: "Musée d'Orsay" in provider.started)
        assert provider.finished == []
        assert queue.item(3).status == ItemStatus.VALIDATING

        provider.release("Eiffel Tower")
        assert _wait_until(lambda: queue.item(3).status == ItemStatus.VALIDATED)
        assert queue.item(0).status == ItemStatus.VALIDATING

        provider.release_all()
        assert scheduler.wait_idle(timeout=5)
        assert queue.count_by_status()["validated"] == 5
    finally:
        provider.release_all()
        scheduler.cancel()


def test_status_sequence_per_item_is_monotonic():
    provider = InstantProvider(failing=("Eiffel Tower",))
    queue = DiscoveryQueue(make_items(*NAMES), prefetch_window=2)
    seen: dict[int, list[str]] = defaultdict(list)
    lock = threading.Lock()

    def record(index, item):
        with lock:
            seen[index].append(item.status.value)

    queue.add_listener(record)
    scheduler = PrefetchScheduler(queue, provider, "Paris")
    try:
        scheduler.start()
        queue.advance()
        queue.advance()
        assert scheduler.wait_idle(timeout=5)
        assert seen[0] == ["validating", "validated"]
        assert seen[3] == ["validating", "error"]
        for sequence in seen.values():
            assert len(sequence) == 2
            assert sequence[0] == "validating"
        assert sorted(provider.calls) == sorted(NAMES)
    finally:
        scheduler.cancel()


def test_cancel_discards_late_completions():
    provider = GatedProvider()
    queue, scheduler = _scheduler(provider)
    scheduler.start()
    assert _wait_until(lambda: len(provider.started) == 3)

    scheduler.cancel()
    provider.release_all()
    assert _wait_until(lambda: len(provider.finished) == 3)
    scheduler.wait_idle(timeout=5)

    assert scheduler.cancelled
    assert queue.closed
    assert [item.status for item in queue.items()[:3]] == [ItemStatus.VALIDATING] * 3
    # nothing new is dispatched after cancel
    queue.advance()
    assert scheduler.refresh() == []
    assert scheduler.dispatched == [0, 1, 2]


def test_unexpected_provider_exception_marks_item_error():
    class Exploding:
        def validate_candidate(self, name, city):
            raise RuntimeError("socket closed")

    queue, scheduler = _scheduler(Exploding(), names=("Louvre",), window=0)
    try:
        scheduler.start()
        assert scheduler.wait_idle(timeout=5)
        item = queue.item(0)
        assert item.status == ItemStatus.ERROR
        assert item.error_message == "socket closed"
    finally:
        scheduler.cancel()


def test_logger_receives_dispatch_and_result_events():
    events = []

    class Recorder:
        def validation_dispatch(self, session_id, index, name, **extra):
            events.append(("dispatch", index, name))

        def validation_result(self, session_id, index, *, status, latency_ms, **extra):
            events.append(("result", index, status))

    queue = DiscoveryQueue(make_items("Louvre"), prefetch_window=0)
    scheduler = PrefetchScheduler(queue, InstantProvider(), "Paris", session_id="s1", logger=Recorder())
    try:
        scheduler.start()
        assert scheduler.wait_idle(timeout=5)
        assert ("dispatch", 0, "Louvre") in events
        assert ("result", 0, "validated") in events
    finally:
        scheduler.cancel()
