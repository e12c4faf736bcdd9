"""One discovery run: generation, queue, prefetch, actions, teardown."""

from __future__ import annotations

import datetime as dt
import threading
import uuid
from dataclasses import dataclass
from typing import Optional, Union

from pydantic import BaseModel, Field

from discovery_engine.config.settings import DiscoverySettings
from discovery_engine.domain.duplicate_guard import build_exclusion_list, filter_new_candidates
from discovery_engine.domain.enums import Intent, ItemType, SaveOutcome, SessionState, SwipeDirection
from discovery_engine.domain.exceptions import ActionNotAllowed, GenerationFailed
from discovery_engine.domain.models import DiscoveryItem, FieldError, TripBounds
from discovery_engine.engine.actions import ActionRouter, intent_for_swipe
from discovery_engine.engine.prefetch import PrefetchScheduler
from discovery_engine.engine.queue import CurrentItem, DiscoveryQueue, QUEUE_EXHAUSTED
from discovery_engine.engine.schedule import ScheduleNegotiator
from discovery_engine.shared.exceptions import ToolError
from discovery_engine.tools.interfaces import (
    ItineraryScheduler,
    Repository,
    SuggestionRequest,
    SuggestionSource,
    ValidationProvider,
)


@dataclass(frozen=True)
class DiscoveryAdapters:
    suggestion_source: SuggestionSource
    validation_provider: ValidationProvider
    repository: Repository
    itinerary: ItineraryScheduler


class NegotiationView(BaseModel):
    item_id: str
    item_name: str
    default_date: str
    default_time: str
    min_date: Optional[str] = None
    max_date: Optional[str] = None
    errors: list[FieldError] = Field(default_factory=list)


class SessionSnapshot(BaseModel):
    session_id: str
    state: SessionState
    city: str
    region: str = ""
    item_type: ItemType
    position: int = 0
    total: int = 0
    current: Optional[DiscoveryItem] = None
    error: Optional[str] = None
    negotiation: Optional[NegotiationView] = None
    status_counts: dict[str, int] = Field(default_factory=dict)


class DiscoverySession:
    """Owns the discovery queue for one city and item type.

    ``start()`` runs the suggestion source once. Its failure is
    session-fatal: the state becomes ``error`` and only ``retry()`` or
    ``close()`` are accepted afterwards. ``close()`` is terminal and
    discards every validation result still in flight.
    """

    def __init__(
        self,
        city: str,
        adapters: DiscoveryAdapters,
        *,
        region: str = "",
        item_type: ItemType = ItemType.ATTRACTION,
        settings: Optional[DiscoverySettings] = None,
        bounds: Optional[TripBounds] = None,
        session_id: Optional[str] = None,
        logger=None,
        today: Optional[dt.date] = None,
    ):
        if not city or not city.strip():
            raise ValueError("city is required")
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.city = city.strip()
        self.region = region.strip()
        self.item_type = item_type
        self.settings = settings or DiscoverySettings()
        self.bounds = bounds or TripBounds()
        self._adapters = adapters
        self._logger = logger
        self._today = today
        self._state = SessionState.IDLE
        self._error: Optional[str] = None
        self._queue: Optional[DiscoveryQueue] = None
        self._scheduler: Optional[PrefetchScheduler] = None
        self._router: Optional[ActionRouter] = None
        self._lock = threading.RLock()

    # ── lifecycle ─────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def queue(self) -> Optional[DiscoveryQueue]:
        return self._queue

    @property
    def scheduler(self) -> Optional[PrefetchScheduler]:
        return self._scheduler

    def start(self) -> SessionSnapshot:
        with self._lock:
            if self._state != SessionState.IDLE:
                raise ActionNotAllowed(f"cannot start a session in state {self._state.value}")
            self._state = SessionState.LOADING
        self._log("session_start", city=self.city, region=self.region, item_type=self.item_type.value)
        return self._generate()

    def retry(self) -> SessionSnapshot:
        with self._lock:
            if self._state != SessionState.ERROR:
                raise ActionNotAllowed(f"retry is only available after a failed start, not {self._state.value}")
            self._state = SessionState.LOADING
            self._error = None
        return self._generate()

    def close(self) -> None:
        with self._lock:
            if self._state == SessionState.CLOSED:
                return
            previous = self._state
            self._state = SessionState.CLOSED
            scheduler = self._scheduler
            queue = self._queue
        if scheduler is not None:
            scheduler.cancel()
        elif queue is not None:
            queue.close()
        self._log(
            "session_end",
            state=previous.value,
            position=queue.position() if queue else 0,
            total=queue.total() if queue else 0,
        )

    def _generate(self) -> SessionSnapshot:
        try:
            try:
                existing = self._adapters.repository.list_names()
                request = SuggestionRequest(
                    city=self.city,
                    region=self.region,
                    item_type=self.item_type,
                    exclude_names=build_exclusion_list(existing),
                    max_results=self.settings.max_candidates,
                )
                raw = self._adapters.suggestion_source.generate_suggestions(request)
            except ToolError as exc:
                raise GenerationFailed(exc.detail) from exc
            except GenerationFailed:
                raise
            except Exception as exc:
                raise GenerationFailed(f"suggestion source failed: {exc}") from exc
            candidates = filter_new_candidates(raw, existing)[: self.settings.max_candidates]
            if not candidates:
                raise GenerationFailed(f"no usable suggestions for {self.city}")
        except GenerationFailed as exc:
            with self._lock:
                if self._state == SessionState.LOADING:
                    self._state = SessionState.ERROR
                    self._error = str(exc)
            self._log("generation", ok=False, error=str(exc))
            raise

        items = [
            DiscoveryItem.from_candidate(f"discovery-{self.session_id}-{idx}", candidate, self.item_type)
            for idx, candidate in enumerate(candidates)
        ]
        queue = DiscoveryQueue(items, prefetch_window=self.settings.prefetch_window)
        scheduler = PrefetchScheduler(
            queue,
            self._adapters.validation_provider,
            self.city,
            session_id=self.session_id,
            logger=self._logger,
        )
        router = ActionRouter(
            queue,
            self._adapters.repository,
            self._adapters.itinerary,
            bounds=self.bounds,
            save_policy=self.settings.save_policy,
            session_id=self.session_id,
            logger=self._logger,
            today=self._today,
        )
        queue.add_advance_hook(self._on_advance)

        with self._lock:
            if self._state != SessionState.LOADING:
                # Closed while the suggestion source was running.
                queue.close()
                return self.snapshot()
            self._queue, self._scheduler, self._router = queue, scheduler, router
            self._state = SessionState.ACTIVE
        dropped = len(raw) - len(items)
        self._log("generation", ok=True, candidates=len(items), dropped=dropped)
        if dropped:
            self._log("warning", message=f"{dropped} suggestions dropped as duplicates or over the cap")
        scheduler.start()
        return self.snapshot()

    def _on_advance(self, cursor: int) -> None:
        with self._lock:
            if self._state == SessionState.ACTIVE and self._queue is not None and cursor >= self._queue.total():
                self._state = SessionState.FINISHED
                finished = True
            else:
                finished = False
            scheduler = self._scheduler
        if finished:
            if scheduler is not None:
                scheduler.shutdown()
            self._log("session_end", state=SessionState.FINISHED.value, position=cursor, total=cursor)

    # ── navigation & actions ─────────────────────────

    def current(self) -> CurrentItem:
        if self._queue is None:
            return QUEUE_EXHAUSTED
        return self._queue.current()

    def position(self) -> int:
        return self._queue.position() if self._queue else 0

    def total(self) -> int:
        return self._queue.total() if self._queue else 0

    @property
    def negotiation(self) -> Optional[ScheduleNegotiator]:
        return self._router.negotiation if self._router else None

    def skip(self) -> DiscoveryItem:
        return self._require_router().skip()

    def save(self) -> SaveOutcome:
        return self._require_router().save()

    def open_schedule(self) -> ScheduleNegotiator:
        return self._require_router().schedule()

    def dispatch(self, intent: Union[Intent, str]):
        return self._require_router().dispatch(intent)

    def swipe(self, direction: Union[SwipeDirection, str]):
        return self.dispatch(intent_for_swipe(direction))

    def _require_router(self) -> ActionRouter:
        with self._lock:
            if self._state != SessionState.ACTIVE or self._router is None:
                raise ActionNotAllowed(f"session is {self._state.value}")
            return self._router

    # ── views ────────────────────────────────────────

    def snapshot(self) -> SessionSnapshot:
        queue = self._queue
        current = self.current()
        negotiation = self.negotiation
        return SessionSnapshot(
            session_id=self.session_id,
            state=self._state,
            city=self.city,
            region=self.region,
            item_type=self.item_type,
            position=queue.position() if queue else 0,
            total=queue.total() if queue else 0,
            current=current if isinstance(current, DiscoveryItem) else None,
            error=self._error,
            negotiation=negotiation_view(negotiation) if negotiation else None,
            status_counts=queue.count_by_status() if queue else {},
        )

    def _log(self, event: str, **fields) -> None:
        if self._logger is None:
            return
        try:
            if event == "session_start":
                self._logger.session_start(self.session_id, **fields)
            elif event == "session_end":
                self._logger.session_end(self.session_id, **fields)
            elif event == "warning":
                self._logger.warning("generation", fields.pop("message"), session_id=self.session_id)
            else:
                self._logger.generation(self.session_id, **fields)
        except Exception:
            return


def negotiation_view(negotiation: ScheduleNegotiator) -> NegotiationView:
    bounds = negotiation.bounds
    return NegotiationView(
        item_id=negotiation.item.id,
        item_name=negotiation.item.name,
        default_date=negotiation.default_date,
        default_time=negotiation.default_time,
        min_date=bounds.start.isoformat() if bounds.start else None,
        max_date=bounds.end.isoformat() if bounds.end else None,
        errors=list(negotiation.last_errors),
    )
