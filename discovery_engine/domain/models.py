"""Pydantic domain models."""

from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from discovery_engine.domain.enums import ItemStatus, ItemType
from discovery_engine.domain.exceptions import InvalidTransition

_ALLOWED_TRANSITIONS: dict[ItemStatus, frozenset[ItemStatus]] = {
    ItemStatus.PENDING: frozenset({ItemStatus.VALIDATING}),
    ItemStatus.VALIDATING: frozenset({ItemStatus.VALIDATED, ItemStatus.ERROR}),
    ItemStatus.VALIDATED: frozenset(),
    ItemStatus.ERROR: frozenset(),
}


class RawCandidate(BaseModel):
    """One unvalidated suggestion as produced by the generation step."""

    name: str = Field(min_length=1)
    category: str = ""
    description: str = ""
    rationale: str = ""


class Enrichment(BaseModel):
    model_config = ConfigDict(frozen=True)

    place_id: str = ""
    address: str = ""
    photos: tuple[str, ...] = ()
    rating: Optional[float] = None
    user_ratings_total: int = 0
    price_level: Optional[int] = Field(default=None, ge=0, le=4)
    open_now: Optional[bool] = None
    opening_hours: tuple[str, ...] = ()
    lat: Optional[float] = None
    lon: Optional[float] = None
    rationale: str = ""


class DiscoveryItem(BaseModel):
    """Immutable per-candidate state. Transitions return a new item."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str = ""
    description: str = ""
    rationale: str = ""
    item_type: ItemType = ItemType.ATTRACTION
    status: ItemStatus = ItemStatus.PENDING
    enriched: Optional[Enrichment] = None
    error_message: Optional[str] = None

    @model_validator(mode="after")
    def _check_status_payload(self) -> "DiscoveryItem":
        if (self.enriched is not None) != (self.status == ItemStatus.VALIDATED):
            raise ValueError("enriched must be set exactly when status is validated")
        if bool(self.error_message) != (self.status == ItemStatus.ERROR):
            raise ValueError("error_message must be set exactly when status is error")
        return self

    @classmethod
    def from_candidate(cls, item_id: str, candidate: RawCandidate, item_type: ItemType) -> "DiscoveryItem":
        return cls(
            id=item_id,
            name=candidate.name.strip(),
            category=candidate.category,
            description=candidate.description,
            rationale=candidate.rationale,
            item_type=item_type,
        )

    def _evolve(self, target: ItemStatus, **changes: Any) -> "DiscoveryItem":
        if target not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransition(self.id, self.status.value, target.value)
        data = dict(self)
        data.update(changes, status=target)
        return DiscoveryItem(**data)

    def start_validation(self) -> "DiscoveryItem":
        return self._evolve(ItemStatus.VALIDATING)

    def mark_validated(self, enrichment: Enrichment) -> "DiscoveryItem":
        if not enrichment.rationale and self.rationale:
            enrichment = enrichment.model_copy(update={"rationale": self.rationale})
        return self._evolve(ItemStatus.VALIDATED, enriched=enrichment)

    def mark_error(self, message: str) -> "DiscoveryItem":
        return self._evolve(ItemStatus.ERROR, error_message=message.strip() or "validation failed")

    @property
    def is_resolved(self) -> bool:
        return self.status in (ItemStatus.VALIDATED, ItemStatus.ERROR)

    @property
    def is_skeleton(self) -> bool:
        """The card has nothing to show yet."""
        return not self.is_resolved

    @property
    def can_schedule(self) -> bool:
        return self.status == ItemStatus.VALIDATED

    @property
    def primary_image(self) -> str:
        if self.enriched and self.enriched.photos:
            return self.enriched.photos[0]
        return ""


class TripBounds(BaseModel):
    start: Optional[dt.date] = None
    end: Optional[dt.date] = None

    @property
    def is_bounded(self) -> bool:
        return self.start is not None and self.end is not None


class NormalizedItem(BaseModel):
    """Record appended to the destination repository on save."""

    name: str
    description: str = ""
    category: str = ""
    item_type: ItemType = ItemType.ATTRACTION
    rating: float = 0.0
    price: str = ""
    image: str = ""
    address: str = ""
    opening_hours: str = ""
    long_description: str = ""


class SchedulePayload(BaseModel):
    item_name: str
    item_type: ItemType
    date: str
    time: str
    notes: Optional[str] = None
    address: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = None


class FieldError(BaseModel):
    field: str
    code: str
    message: str = ""


def format_price_level(level: Optional[int]) -> str:
    if level is None:
        return ""
    if level == 0:
        return "Free"
    return "$" * level


def to_normalized_item(item: DiscoveryItem) -> NormalizedItem:
    """Build the repository record. Failed items carry raw suggestion text only."""
    enriched = item.enriched
    if enriched is None:
        return NormalizedItem(
            name=item.name,
            description=item.description,
            category=item.category,
            item_type=item.item_type,
            long_description=item.rationale,
        )
    return NormalizedItem(
        name=item.name,
        description=item.description,
        category=item.category,
        item_type=item.item_type,
        rating=float(enriched.rating or 0.0),
        price=format_price_level(enriched.price_level),
        image=item.primary_image,
        address=enriched.address,
        opening_hours=" | ".join(enriched.opening_hours),
        long_description=enriched.rationale or item.rationale,
    )
