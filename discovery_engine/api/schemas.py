"""API request/response models."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from discovery_engine.domain.enums import ItemType
from discovery_engine.domain.models import FieldError, NormalizedItem, SchedulePayload
from discovery_engine.engine.session import NegotiationView, SessionSnapshot

_TRIP_ID_PATTERN = r"^[A-Za-z0-9_-]+$"


class StartSessionRequest(BaseModel):
    trip_id: str = Field(min_length=1, max_length=64, pattern=_TRIP_ID_PATTERN)
    city: str = Field(min_length=1, max_length=120)
    region: str = Field(default="", max_length=120, description="Region or country")
    item_type: ItemType = ItemType.ATTRACTION
    trip_start: Optional[dt.date] = None
    trip_end: Optional[dt.date] = None

    @model_validator(mode="after")
    def _check_bounds(self) -> "StartSessionRequest":
        if self.trip_start and self.trip_end and self.trip_end < self.trip_start:
            raise ValueError("trip_end must not be before trip_start")
        return self


class ScheduleConfirmRequest(BaseModel):
    date: str = Field(min_length=1, max_length=10, description="YYYY-MM-DD")
    time: str = Field(min_length=1, max_length=5, description="24-hour HH:MM")
    notes: Optional[str] = Field(default=None, max_length=500)


class ActionResponse(BaseModel):
    intent: str
    outcome: str = ""
    session: SessionSnapshot


class ScheduleOpenResponse(BaseModel):
    negotiation: NegotiationView
    session: SessionSnapshot


class ScheduleErrorResponse(BaseModel):
    errors: list[FieldError] = Field(default_factory=list)
    session: SessionSnapshot


class SavedItemsResponse(BaseModel):
    trip_id: str
    item_type: ItemType
    items: list[NormalizedItem] = Field(default_factory=list)


class ItineraryResponse(BaseModel):
    trip_id: str
    entries: list[SchedulePayload] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str = "ok"
