"""In-memory trip collections: saved items and itinerary entries per trip."""

from __future__ import annotations

import threading
from typing import Iterable, Optional

from discovery_engine.domain.enums import ItemType
from discovery_engine.domain.models import NormalizedItem, SchedulePayload, TripBounds
from discovery_engine.shared.exceptions import ExternalServiceError
from discovery_engine.validators.schedule_validator import parse_schedule_date


class MemoryRepository:
    """Append-only saved-items list. Duplicate checks are the caller's job."""

    def __init__(self, names: Iterable[str] = ()):
        self._records: list[NormalizedItem] = [NormalizedItem(name=name) for name in names]
        self._lock = threading.Lock()

    def list_names(self) -> list[str]:
        with self._lock:
            return [record.name for record in self._records]

    def save(self, record: NormalizedItem) -> None:
        with self._lock:
            self._records.append(record)

    def records(self) -> list[NormalizedItem]:
        with self._lock:
            return list(self._records)


class MemoryItinerary:
    """Itinerary entries; rejects dates outside the trip the way a real backend would."""

    def __init__(self, bounds: Optional[TripBounds] = None):
        self._bounds = bounds or TripBounds()
        self._entries: list[SchedulePayload] = []
        self._lock = threading.Lock()

    @property
    def bounds(self) -> TripBounds:
        with self._lock:
            return self._bounds

    def rebind(self, bounds: TripBounds) -> None:
        """Trip dates changed; later entries are checked against the new ones."""
        with self._lock:
            self._bounds = bounds

    def schedule_item(self, payload: SchedulePayload) -> None:
        day = parse_schedule_date(payload.date)
        if day is None:
            raise ExternalServiceError(f"invalid date: {payload.date}")
        with self._lock:
            bounds = self._bounds
            if bounds.is_bounded and not (bounds.start <= day <= bounds.end):
                raise ExternalServiceError(f"{payload.date} is outside the trip")
            self._entries.append(payload)

    def entries(self) -> list[SchedulePayload]:
        with self._lock:
            return list(self._entries)


class TripStore:
    """Per-trip repositories (one per item type) and itineraries."""

    def __init__(self):
        self._repositories: dict[tuple[str, ItemType], MemoryRepository] = {}
        self._itineraries: dict[str, MemoryItinerary] = {}
        self._lock = threading.Lock()

    def repository(self, trip_id: str, item_type: ItemType) -> MemoryRepository:
        with self._lock:
            key = (trip_id, item_type)
            if key not in self._repositories:
                self._repositories[key] = MemoryRepository()
            return self._repositories[key]

    def itinerary(self, trip_id: str, bounds: Optional[TripBounds] = None) -> MemoryItinerary:
        """The trip's itinerary; supplied ``bounds`` replace the stored trip dates."""
        with self._lock:
            itinerary = self._itineraries.get(trip_id)
            if itinerary is None:
                itinerary = self._itineraries[trip_id] = MemoryItinerary(bounds)
            elif bounds is not None:
                itinerary.rebind(bounds)
            return itinerary


_global_lock = threading.Lock()
_global_store: Optional[TripStore] = None


def get_trip_store() -> TripStore:
    global _global_store
    with _global_lock:
        if _global_store is None:
            _global_store = TripStore()
        return _global_store
