"""Adapter protocols for the discovery engine's external collaborators."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from discovery_engine.domain.enums import ItemType
from discovery_engine.domain.models import Enrichment, NormalizedItem, RawCandidate, SchedulePayload
from discovery_engine.shared.exceptions import ToolError


class SuggestionRequest(BaseModel):
    city: str = Field(min_length=1)
    region: str = ""
    item_type: ItemType = ItemType.ATTRACTION
    exclude_names: list[str] = Field(default_factory=list)
    max_results: int = 10


@runtime_checkable
class SuggestionSource(Protocol):
    """Produces the ordered candidate list for a session. Raises ToolError on failure."""

    def generate_suggestions(self, params: SuggestionRequest) -> list[RawCandidate]: ...


@runtime_checkable
class ValidationProvider(Protocol):
    """Confirms one candidate exists and returns its metadata.

    Must be safe to call concurrently for different names and must raise
    ToolError (never hang) on timeout.
    """

    def validate_candidate(self, name: str, city: str) -> Enrichment: ...


@runtime_checkable
class Repository(Protocol):
    """Append-only destination collection for saved items."""

    def list_names(self) -> list[str]: ...

    def save(self, record: NormalizedItem) -> None: ...


@runtime_checkable
class ItineraryScheduler(Protocol):
    """Commits an item to the trip itinerary. Raises ToolError/ExternalServiceError on rejection."""

    def schedule_item(self, payload: SchedulePayload) -> None: ...


__all__ = [
    "SuggestionRequest",
    "SuggestionSource",
    "ValidationProvider",
    "Repository",
    "ItineraryScheduler",
    "ToolError",
]
