"""Schedule form validation."""

from __future__ import annotations

import datetime as dt

import pytest

from discovery_engine.domain.models import TripBounds
from discovery_engine.validators.schedule_validator import (
    parse_schedule_date,
    parse_schedule_time,
    validate_schedule_fields,
)

JUNE_TRIP = TripBounds(start=dt.date(2025, 6, 1), end=dt.date(2025, 6, 10))


def _codes(errors):
    return [error.code for error in errors]


def test_date_before_trip_rejected():
    errors = validate_schedule_fields("2025-05-30", "10:00", JUNE_TRIP)
    assert _codes(errors) == ["DATE_BEFORE_TRIP"]
    assert errors[0].field == "date"


def test_date_inside_trip_accepted():
    assert validate_schedule_fields("2025-06-05", "10:00", JUNE_TRIP) == []


def test_bounds_are_inclusive():
    assert validate_schedule_fields("2025-06-01", "00:00", JUNE_TRIP) == []
    assert validate_schedule_fields("2025-06-10", "23:59", JUNE_TRIP) == []


def test_date_after_trip_rejected():
    assert _codes(validate_schedule_fields("2025-06-11", "10:00", JUNE_TRIP)) == ["DATE_AFTER_TRIP"]


@pytest.mark.parametrize("raw", ["", "06/05/2025", "2025-02-30", "tomorrow", "20250605", "2025-W23-4", "2025-6-5"])
def test_invalid_date_format(raw):
    assert _codes(validate_schedule_fields(raw, "10:00", JUNE_TRIP)) == ["INVALID_DATE"]


@pytest.mark.parametrize("raw", ["", "9:00", "24:00", "12:60", "noon", "10:00:00"])
def test_invalid_time(raw):
    assert parse_schedule_time(raw) is None
    assert _codes(validate_schedule_fields("2025-06-05", raw, JUNE_TRIP)) == ["INVALID_TIME"]


def test_both_fields_reported_together():
    assert _codes(validate_schedule_fields("bad", "bad", JUNE_TRIP)) == ["INVALID_DATE", "INVALID_TIME"]


def test_unbounded_trip_accepts_any_valid_date():
    assert validate_schedule_fields("1999-01-01", "08:30", TripBounds()) == []
    assert validate_schedule_fields("1999-01-01", "08:30", TripBounds(start=dt.date(2025, 6, 1))) == []


def test_parse_helpers_trim_input():
    assert parse_schedule_date(" 2025-06-05 ") == dt.date(2025, 6, 5)
    assert parse_schedule_time(" 07:15 ") == "07:15"
