"""Form-level validators."""

from discovery_engine.validators.schedule_validator import (
    parse_schedule_date,
    parse_schedule_time,
    validate_schedule_fields,
)

__all__ = ["parse_schedule_date", "parse_schedule_time", "validate_schedule_fields"]
