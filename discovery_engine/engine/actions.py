"""User intents applied to the item under the cursor."""

from __future__ import annotations

import datetime as dt
import threading
from typing import Optional, Union

from discovery_engine.domain.duplicate_guard import is_duplicate
from discovery_engine.domain.enums import Intent, ItemStatus, SaveOutcome, SavePolicy, SwipeDirection
from discovery_engine.domain.exceptions import ActionNotAllowed
from discovery_engine.domain.models import DiscoveryItem, TripBounds, to_normalized_item
from discovery_engine.engine.queue import DiscoveryQueue
from discovery_engine.engine.schedule import ScheduleNegotiator
from discovery_engine.tools.interfaces import ItineraryScheduler, Repository

_SWIPE_INTENTS = {
    SwipeDirection.LEFT: Intent.SKIP,
    SwipeDirection.RIGHT: Intent.SAVE,
    SwipeDirection.UP: Intent.SCHEDULE,
}


def intent_for_swipe(direction: Union[SwipeDirection, str]) -> Intent:
    return _SWIPE_INTENTS[SwipeDirection(direction)]


class ActionRouter:
    """Turns skip / save / schedule into side effects plus one cursor advance.

    While a schedule negotiation is open, no other intent is accepted; the
    queue advances when the negotiation is confirmed or cancelled.
    """

    def __init__(
        self,
        queue: DiscoveryQueue,
        repository: Repository,
        itinerary: ItineraryScheduler,
        *,
        bounds: Optional[TripBounds] = None,
        save_policy: SavePolicy = SavePolicy.RAW_ALLOWED,
        session_id: str = "",
        logger=None,
        today: Optional[dt.date] = None,
    ):
        self._queue = queue
        self._repository = repository
        self._itinerary = itinerary
        self._bounds = bounds or TripBounds()
        self._save_policy = save_policy
        self._session_id = session_id
        self._logger = logger
        self._today = today
        self._negotiation: Optional[ScheduleNegotiator] = None
        self._lock = threading.RLock()

    @property
    def save_policy(self) -> SavePolicy:
        return self._save_policy

    @property
    def negotiation(self) -> Optional[ScheduleNegotiator]:
        with self._lock:
            if self._negotiation is not None and self._negotiation.is_open:
                return self._negotiation
            return None

    def dispatch(self, intent: Union[Intent, str]):
        intent = Intent(intent)
        if intent == Intent.SKIP:
            return self.skip()
        if intent == Intent.SAVE:
            return self.save()
        return self.schedule()

    def skip(self) -> DiscoveryItem:
        with self._lock:
            item, index = self._require_current()
            self._queue.advance()
        self._log(Intent.SKIP, index, outcome="skipped", name=item.name)
        return item

    def save(self) -> SaveOutcome:
        with self._lock:
            item, index = self._require_current()
            if item.status == ItemStatus.VALIDATED:
                outcome = SaveOutcome.SAVED
            elif item.status == ItemStatus.ERROR:
                if self._save_policy == SavePolicy.VALIDATED_ONLY:
                    raise ActionNotAllowed(f"{item.name} failed validation and cannot be saved")
                outcome = SaveOutcome.SAVED_RAW
            else:
                raise ActionNotAllowed(f"{item.name} is still {item.status.value}")

            # Fresh read: the repository may have changed since the session started.
            if is_duplicate(item.name, self._repository.list_names()):
                outcome = SaveOutcome.DUPLICATE
            else:
                self._repository.save(to_normalized_item(item))
            self._queue.advance()
        self._log(Intent.SAVE, index, outcome=outcome.value, name=item.name)
        return outcome

    def schedule(self) -> ScheduleNegotiator:
        with self._lock:
            item, index = self._require_current()
            if not item.can_schedule:
                raise ActionNotAllowed(f"{item.name} has no validated place data to schedule")
            self._negotiation = ScheduleNegotiator(
                item,
                self._bounds,
                self._itinerary,
                on_close=lambda how: self._conclude_negotiation(index, how),
                today=self._today,
                session_id=self._session_id,
                logger=self._logger,
            )
        self._log(Intent.SCHEDULE, index, outcome="opened", name=item.name)
        return self._negotiation

    def _conclude_negotiation(self, index: int, how: str) -> None:
        with self._lock:
            self._negotiation = None
            if self._queue.position() == index:
                self._queue.advance()
        self._log(Intent.SCHEDULE, index, outcome=how)

    def _require_current(self) -> tuple[DiscoveryItem, int]:
        if self._queue.closed:
            raise ActionNotAllowed("discovery session is closed")
        if self.negotiation is not None:
            raise ActionNotAllowed("a schedule negotiation is still open")
        current = self._queue.current()
        if not isinstance(current, DiscoveryItem):
            raise ActionNotAllowed("queue exhausted")
        return current, self._queue.position()

    def _log(self, intent: Intent, index: int, *, outcome: str, **extra) -> None:
        if self._logger is None:
            return
        try:
            self._logger.action(self._session_id, intent.value, index=index, outcome=outcome, **extra)
        except Exception:
            return
