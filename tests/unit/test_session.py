"""DiscoverySession lifecycle end to end on in-process adapters."""

from __future__ import annotations

import datetime as dt
import threading
import time

import pytest

from discovery_engine.adapters.suggestion import mock as mock_suggestion
from discovery_engine.adapters.validation import mock as mock_validation
from discovery_engine.config.settings import DiscoverySettings
from discovery_engine.domain.enums import ItemStatus, ItemType, SaveOutcome, SessionState
from discovery_engine.domain.exceptions import ActionNotAllowed, GenerationFailed
from discovery_engine.domain.models import TripBounds
from discovery_engine.engine.queue import QUEUE_EXHAUSTED
from discovery_engine.engine.session import DiscoveryAdapters, DiscoverySession
from tests.fakes import GatedProvider, InstantProvider, ListRepository, RecordingItinerary, StaticSuggestions

TRIP = TripBounds(start=dt.date(2025, 6, 1), end=dt.date(2025, 6, 10))


def _session(suggestions, provider, repo=None, itinerary=None, item_type=ItemType.ATTRACTION, **settings):
    adapters = DiscoveryAdapters(
        suggestion_source=suggestions,
        validation_provider=provider,
        repository=repo if repo is not None else ListRepository(),
        itinerary=itinerary if itinerary is not None else RecordingItinerary(),
    )
    return DiscoverySession(
        "Paris",
        adapters,
        region="France",
        item_type=item_type,
        settings=DiscoverySettings(**settings),
        bounds=TRIP,
        session_id="t1",
        today=dt.date(2025, 5, 1),
    )


def test_city_is_required():
    adapters = DiscoveryAdapters(StaticSuggestions([]), InstantProvider(), ListRepository(), RecordingItinerary())
    with pytest.raises(ValueError):
        DiscoverySession("  ", adapters)


def test_paris_scenario_with_failed_validation():
    repo = ListRepository(("Eiffel Tower",))
    provider = InstantProvider(failing=("Sainte-Chapelle",))
    session = _session(mock_suggestion, provider, repo=repo)

    snapshot = session.start()
    assert snapshot.state == SessionState.ACTIVE
    assert session.scheduler.wait_idle(timeout=5)

    names = [item.name for item in session.queue.items()]
    assert "Eiffel Tower" not in names
    assert names[:3] == ["Louvre", "Sainte-Chapelle", "Luxembourg Gardens"]
    assert session.queue.item(0).id == "discovery-t1-0"

    # Louvre: validated, saved
    assert session.current().status == ItemStatus.VALIDATED
    assert session.save() == SaveOutcome.SAVED

    # Sainte-Chapelle: failed, not schedulable, skipped
    failed = session.current()
    assert failed.status == ItemStatus.ERROR
    with pytest.raises(ActionNotAllowed):
        session.open_schedule()
    session.skip()

    # Luxembourg Gardens: schedule inside the trip
    negotiation = session.open_schedule()
    assert not negotiation.confirm("2025-05-30", "10:00").ok
    assert session.position() == 2
    assert negotiation.confirm("2025-06-05", "10:00").ok
    assert session.position() == 3

    assert [r.name for r in repo.records] == ["Eiffel Tower", "Louvre"]
    session.close()


def test_exclusions_are_sent_to_the_suggestion_source():
    suggestions = StaticSuggestions(["Louvre", "Eiffel Tower", "Louvre"])
    session = _session(suggestions, InstantProvider(), repo=ListRepository(("eiffel tower", "Eiffel Tower ")))
    session.start()
    try:
        assert suggestions.requests[0].exclude_names == ["eiffel tower"]
        assert suggestions.requests[0].city == "Paris"
        assert suggestions.requests[0].region == "France"
        assert [item.name for item in session.queue.items()] == ["Louvre"]
    finally:
        session.close()


def test_candidate_cap_applies():
    suggestions = StaticSuggestions([f"Place {n}" for n in range(8)])
    session = _session(suggestions, InstantProvider(), max_candidates=3)
    session.start()
    try:
        assert session.total() == 3
        assert suggestions.requests[0].max_results == 3
    finally:
        session.close()


def test_generation_failure_is_session_fatal_until_retry():
    suggestions = StaticSuggestions(["Louvre"], fail_times=1)
    session = _session(suggestions, InstantProvider())

    with pytest.raises(GenerationFailed):
        session.start()
    assert session.state == SessionState.ERROR
    assert "quota" in session.error
    assert session.current() is QUEUE_EXHAUSTED
    with pytest.raises(ActionNotAllowed):
        session.skip()
    with pytest.raises(ActionNotAllowed):
        session.start()

    snapshot = session.retry()
    assert snapshot.state == SessionState.ACTIVE
    assert snapshot.error is None
    assert snapshot.total == 1
    session.close()


def test_empty_generation_fails():
    session = _session(StaticSuggestions(["Louvre"]), InstantProvider(), repo=ListRepository(("Louvre",)))
    with pytest.raises(GenerationFailed):
        session.start()
    assert session.state == SessionState.ERROR


def test_unexpected_source_exception_becomes_generation_failure():
    class Broken:
        def generate_suggestions(self, params):
            raise KeyError("suggestions")

    session = _session(Broken(), InstantProvider())
    with pytest.raises(GenerationFailed):
        session.start()
    assert session.state == SessionState.ERROR


def test_retry_only_after_error():
    session = _session(StaticSuggestions(["Louvre"]), InstantProvider())
    with pytest.raises(ActionNotAllowed):
        session.retry()


def test_finishing_the_queue():
    session = _session(StaticSuggestions(["Louvre", "Orsay"]), InstantProvider())
    session.start()
    session.skip()
    session.swipe("left")
    assert session.state == SessionState.FINISHED
    assert session.current() is QUEUE_EXHAUSTED
    with pytest.raises(ActionNotAllowed):
        session.skip()
    session.close()
    assert session.state == SessionState.CLOSED


def test_close_discards_in_flight_results():
    provider = GatedProvider()
    session = _session(StaticSuggestions(["Louvre", "Orsay", "Pantheon"]), provider)
    session.start()
    session.close()
    provider.release_all()
    session.scheduler.wait_idle(timeout=5)

    assert session.state == SessionState.CLOSED
    assert session.queue.count_by_status()["validating"] == 3
    with pytest.raises(ActionNotAllowed):
        session.save()
    # idempotent
    session.close()


def test_snapshot_reports_negotiation_and_counts():
    session = _session(mock_suggestion, mock_validation, prefetch_window=0)
    session.start()
    try:
        assert session.scheduler.wait_idle(timeout=5)
        session.open_schedule()
        snapshot = session.snapshot()
        assert snapshot.current.name == "Louvre"
        assert snapshot.negotiation.item_name == "Louvre"
        assert snapshot.negotiation.min_date == "2025-06-01"
        assert snapshot.negotiation.max_date == "2025-06-10"
        assert snapshot.status_counts["validated"] == 1
        assert snapshot.status_counts["pending"] == snapshot.total - 1
    finally:
        session.close()


def test_restaurant_session_uses_item_type():
    session = _session(mock_suggestion, mock_validation, item_type=ItemType.RESTAURANT)
    session.start()
    try:
        names = [item.name for item in session.queue.items()]
        assert names == ["Bouillon Chartier", "Le Comptoir du Relais", "Breizh Café"]
        assert all(item.item_type == ItemType.RESTAURANT for item in session.queue.items())
    finally:
        session.close()


def test_three_candidates_validate_concurrently_at_creation():
    provider = GatedProvider(failing=("Sainte-Chapelle",))
    session = _session(StaticSuggestions(["Louvre", "Sainte-Chapelle", "Eiffel Tower"]), provider)
    session.start()
    try:
        deadline = time.monotonic() + 5
        while len(provider.started) < 3 and time.monotonic() < deadline:
            time.sleep(0.01)
        assert sorted(provider.started) == ["Eiffel Tower", "Louvre", "Sainte-Chapelle"]
        assert provider.max_concurrent == 3

        provider.release_all()
        assert session.scheduler.wait_idle(timeout=5)

        session.skip()
        assert session.current().status == ItemStatus.ERROR
        with pytest.raises(ActionNotAllowed):
            session.open_schedule()
        assert session.save() == SaveOutcome.SAVED_RAW
        session.open_schedule().cancel()
        assert session.state == SessionState.FINISHED
    finally:
        provider.release_all()
        session.close()


def test_finishing_releases_prefetch_threads_but_keeps_results():
    provider = GatedProvider()
    adapters = DiscoveryAdapters(StaticSuggestions(["Louvre", "Orsay", "Pantheon"]), provider, ListRepository(), RecordingItinerary())
    session = DiscoverySession("Paris", adapters, session_id="finish-threads")
    session.start()
    for _ in range(3):
        session.skip()

    assert session.state == SessionState.FINISHED
    assert session.scheduler.stopped
    assert not session.scheduler.cancelled

    provider.release_all()
    assert session.scheduler.wait_idle(timeout=5)
    assert session.queue.count_by_status()["validated"] == 3

    def workers():
        return [t for t in threading.enumerate() if t.name.startswith("prefetch-finish-threads")]

    deadline = time.monotonic() + 5
    while workers() and time.monotonic() < deadline:
        time.sleep(0.02)
    assert workers() == []
