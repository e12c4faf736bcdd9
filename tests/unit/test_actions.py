"""Intent routing: skip / save / schedule on the item under the cursor."""

from __future__ import annotations

import datetime as dt

import pytest

from discovery_engine.domain.enums import Intent, ItemStatus, SaveOutcome, SavePolicy, SwipeDirection
from discovery_engine.domain.exceptions import ActionNotAllowed
from discovery_engine.domain.models import TripBounds
from discovery_engine.engine.actions import ActionRouter, intent_for_swipe
from discovery_engine.engine.queue import QUEUE_EXHAUSTED, DiscoveryQueue
from tests.fakes import ListRepository, RecordingItinerary, enrichment_for, make_items

TRIP = TripBounds(start=dt.date(2025, 6, 1), end=dt.date(2025, 6, 10))


def _resolve(queue: DiscoveryQueue, index: int, ok: bool = True) -> None:
    queue.claim_for_validation(index)
    if ok:
        queue.apply(index, lambda item: item.mark_validated(enrichment_for(item.name)))
    else:
        queue.apply(index, lambda item: item.mark_error("place not found"))


def _router(*names, repo=None, policy=SavePolicy.RAW_ALLOWED, itinerary=None):
    queue = DiscoveryQueue(make_items(*names), prefetch_window=2)
    repo = repo if repo is not None else ListRepository()
    itinerary = itinerary if itinerary is not None else RecordingItinerary()
    router = ActionRouter(queue, repo, itinerary, bounds=TRIP, save_policy=policy, today=dt.date(2025, 5, 1))
    return queue, repo, itinerary, router


def test_swipe_mapping():
    assert intent_for_swipe("left") == Intent.SKIP
    assert intent_for_swipe(SwipeDirection.RIGHT) == Intent.SAVE
    assert intent_for_swipe("up") == Intent.SCHEDULE
    with pytest.raises(ValueError):
        intent_for_swipe("down")


def test_skip_advances_without_side_effects():
    queue, repo, itinerary, router = _router("Louvre", "Eiffel Tower")
    skipped = router.skip()
    assert skipped.name == "Louvre"
    assert queue.position() == 1
    assert repo.records == []
    assert itinerary.entries == []


def test_skip_allowed_while_pending():
    queue, _, _, router = _router("Louvre")
    assert queue.current().status == ItemStatus.PENDING
    router.skip()
    assert queue.current() is QUEUE_EXHAUSTED


def test_save_validated_item_appends_normalized_record():
    queue, repo, _, router = _router("Louvre", "Eiffel Tower")
    _resolve(queue, 0)
    assert router.save() == SaveOutcome.SAVED
    assert [r.name for r in repo.records] == ["Louvre"]
    assert repo.records[0].price == "$$"
    assert repo.records[0].address == "Louvre address"
    assert queue.position() == 1


def test_save_duplicate_is_noop_but_advances():
    repo = ListRepository(("Eiffel Tower",))
    queue, repo, _, router = _router("eiffel tower", "Louvre", repo=repo)
    _resolve(queue, 0)
    assert router.save() == SaveOutcome.DUPLICATE
    assert [r.name for r in repo.records] == ["Eiffel Tower"]
    assert queue.position() == 1


def test_save_rereads_repository_each_time():
    queue, repo, _, router = _router("Louvre", "Eiffel Tower")
    _resolve(queue, 0)
    _resolve(queue, 1)
    router.save()
    # another writer adds the next item before the user gets to it
    repo.records.append(repo.records[0].model_copy(update={"name": "Eiffel Tower"}))
    assert router.save() == SaveOutcome.DUPLICATE
    assert repo.list_calls == 2


def test_save_failed_item_raw_when_allowed():
    queue, repo, _, router = _router("Sainte-Chapelle")
    _resolve(queue, 0, ok=False)
    assert router.save() == SaveOutcome.SAVED_RAW
    assert repo.records[0].name == "Sainte-Chapelle"
    assert repo.records[0].image == ""


def test_save_failed_item_refused_when_validated_only():
    queue, repo, _, router = _router("Sainte-Chapelle", policy=SavePolicy.VALIDATED_ONLY)
    _resolve(queue, 0, ok=False)
    with pytest.raises(ActionNotAllowed):
        router.save()
    assert repo.records == []
    assert queue.position() == 0


@pytest.mark.parametrize("claim", [False, True])
def test_save_unresolved_item_refused(claim):
    queue, repo, _, router = _router("Louvre")
    if claim:
        queue.claim_for_validation(0)
    with pytest.raises(ActionNotAllowed):
        router.save()
    assert queue.position() == 0


def test_repository_failure_propagates_and_does_not_advance():
    class Broken(ListRepository):
        def save(self, record):
            raise RuntimeError("disk full")

    queue, _, _, router = _router("Louvre", repo=Broken())
    _resolve(queue, 0)
    with pytest.raises(RuntimeError):
        router.save()
    assert queue.position() == 0


def test_schedule_requires_validated_item():
    queue, _, _, router = _router("Louvre", "Sainte-Chapelle")
    with pytest.raises(ActionNotAllowed):
        router.schedule()
    _resolve(queue, 0, ok=False)
    with pytest.raises(ActionNotAllowed):
        router.schedule()
    assert router.negotiation is None


def test_schedule_opens_negotiation_and_blocks_other_intents():
    queue, _, itinerary, router = _router("Louvre", "Eiffel Tower")
    _resolve(queue, 0)
    negotiation = router.schedule()

    assert router.negotiation is negotiation
    assert negotiation.default_date == "2025-06-01"
    assert queue.position() == 0
    for intent in (Intent.SKIP, Intent.SAVE, Intent.SCHEDULE):
        with pytest.raises(ActionNotAllowed):
            router.dispatch(intent)

    result = negotiation.confirm("2025-06-03", "14:30")
    assert result.ok
    assert queue.position() == 1
    assert router.negotiation is None
    assert itinerary.entries[0].item_name == "Louvre"


def test_cancel_negotiation_advances():
    queue, _, itinerary, router = _router("Louvre", "Eiffel Tower")
    _resolve(queue, 0)
    router.dispatch("schedule").cancel()
    assert queue.position() == 1
    assert itinerary.entries == []


def test_actions_refused_on_exhausted_or_closed_queue():
    queue, _, _, router = _router("Louvre")
    router.skip()
    with pytest.raises(ActionNotAllowed):
        router.skip()

    queue2, _, _, router2 = _router("Louvre")
    queue2.close()
    with pytest.raises(ActionNotAllowed):
        router2.skip()
