"""Schedule negotiation for the item under the cursor."""

from __future__ import annotations

import datetime as dt
import threading
from collections.abc import Callable
from typing import Optional

from pydantic import BaseModel, Field

from discovery_engine.domain.exceptions import NegotiationClosed
from discovery_engine.domain.models import DiscoveryItem, FieldError, SchedulePayload, TripBounds
from discovery_engine.shared.exceptions import ExternalServiceError, ToolError
from discovery_engine.tools.interfaces import ItineraryScheduler
from discovery_engine.validators.schedule_validator import (
    parse_schedule_date,
    parse_schedule_time,
    validate_schedule_fields,
)

DEFAULT_TIME = "09:00"


class NegotiationResult(BaseModel):
    ok: bool
    errors: list[FieldError] = Field(default_factory=list)
    payload: Optional[SchedulePayload] = None


class ScheduleNegotiator:
    """Open until an explicit confirm succeeds or cancel is called.

    ``on_close`` receives ``"confirmed"`` or ``"cancelled"`` exactly once.
    Validation failures and itinerary rejections leave it open.
    """

    def __init__(
        self,
        item: DiscoveryItem,
        bounds: TripBounds,
        itinerary: ItineraryScheduler,
        on_close: Callable[[str], None],
        *,
        today: Optional[dt.date] = None,
        session_id: str = "",
        logger=None,
    ):
        self.item = item
        self.bounds = bounds
        self._itinerary = itinerary
        self._on_close = on_close
        self._today = today or dt.date.today()
        self._session_id = session_id
        self._logger = logger
        self._closed = False
        self._lock = threading.Lock()
        self.last_errors: list[FieldError] = []

    @property
    def is_open(self) -> bool:
        return not self._closed

    @property
    def default_date(self) -> str:
        return (self.bounds.start or self._today).isoformat()

    @property
    def default_time(self) -> str:
        return DEFAULT_TIME

    def validate(self, date: str, time: str) -> list[FieldError]:
        return validate_schedule_fields(date, time, self.bounds)

    def build_payload(self, date: str, time: str, notes: Optional[str] = None) -> SchedulePayload:
        """Normalised itinerary payload. Assumes the fields already validated."""
        day = parse_schedule_date(date)
        enriched = self.item.enriched
        return SchedulePayload(
            item_name=self.item.name,
            item_type=self.item.item_type,
            date=day.isoformat() if day else str(date).strip(),
            time=parse_schedule_time(time) or str(time).strip(),
            notes=(notes or "").strip() or None,
            address=(enriched.address if enriched else "") or None,
            image=self.item.primary_image or None,
            category=self.item.category or None,
        )

    def confirm(self, date: str, time: str, notes: Optional[str] = None) -> NegotiationResult:
        with self._lock:
            if self._closed:
                raise NegotiationClosed(f"schedule for {self.item.name} already concluded")

            errors = self.validate(date, time)
            if errors:
                self.last_errors = errors
                self._log(ok=False, codes=[error.code for error in errors])
                return NegotiationResult(ok=False, errors=errors)

            payload = self.build_payload(date, time, notes)
            try:
                self._itinerary.schedule_item(payload)
            except (ToolError, ExternalServiceError) as exc:
                message = exc.detail if isinstance(exc, ToolError) else str(exc)
                self.last_errors = [
                    FieldError(field="scheduling", code="SCHEDULING_REJECTED", message=message or "rejected"),
                ]
                self._log(ok=False, codes=["SCHEDULING_REJECTED"], error=message)
                return NegotiationResult(ok=False, errors=self.last_errors, payload=payload)

            self._closed = True
            self.last_errors = []
        self._log(ok=True, date=payload.date, time=payload.time)
        self._on_close("confirmed")
        return NegotiationResult(ok=True, payload=payload)

    def cancel(self) -> None:
        with self._lock:
            if self._closed:
                raise NegotiationClosed(f"schedule for {self.item.name} already concluded")
            self._closed = True
        self._on_close("cancelled")

    def _log(self, *, ok: bool, **fields) -> None:
        if self._logger is None:
            return
        try:
            self._logger.schedule(self._session_id, ok=ok, item=self.item.name, **fields)
        except Exception:
            return
