"""Schedule form validator: date within trip bounds, 24-hour time."""

from __future__ import annotations

import datetime as dt
import re
from typing import Optional

from discovery_engine.domain.models import FieldError, TripBounds

_DATE_RE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")
_TIME_RE = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d$")


def parse_schedule_date(raw: str) -> Optional[dt.date]:
    value = str(raw or "").strip()
    if not _DATE_RE.match(value):
        return None
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        return None


def parse_schedule_time(raw: str) -> Optional[str]:
    value = str(raw or "").strip()
    return value if _TIME_RE.match(value) else None


def validate_schedule_fields(date_str: str, time_str: str, bounds: TripBounds) -> list[FieldError]:
    errors: list[FieldError] = []

    day = parse_schedule_date(date_str)
    if day is None:
        errors.append(FieldError(field="date", code="INVALID_DATE", message="Date must be YYYY-MM-DD"))
    elif bounds.is_bounded:
        if day < bounds.start:
            errors.append(
                FieldError(
                    field="date",
                    code="DATE_BEFORE_TRIP",
                    message=f"{day.isoformat()} is before the trip starts ({bounds.start.isoformat()})",
                )
            )
        elif day > bounds.end:
            errors.append(
                FieldError(
                    field="date",
                    code="DATE_AFTER_TRIP",
                    message=f"{day.isoformat()} is after the trip ends ({bounds.end.isoformat()})",
                )
            )

    if parse_schedule_time(time_str) is None:
        errors.append(FieldError(field="time", code="INVALID_TIME", message="Time must be 24-hour HH:MM"))

    return errors
