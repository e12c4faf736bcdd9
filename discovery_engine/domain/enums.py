"""Domain enums."""

from enum import Enum


class ItemStatus(str, Enum):
    PENDING = "pending"
    VALIDATING = "validating"
    VALIDATED = "validated"
    ERROR = "error"


class ItemType(str, Enum):
    ATTRACTION = "attraction"
    RESTAURANT = "restaurant"
    CUSTOM = "custom"


class SessionState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ACTIVE = "active"
    FINISHED = "finished"
    ERROR = "error"
    CLOSED = "closed"


class Intent(str, Enum):
    SKIP = "skip"
    SAVE = "save"
    SCHEDULE = "schedule"


class SwipeDirection(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    UP = "up"


class SavePolicy(str, Enum):
    """What a save does for an item whose validation failed."""

    RAW_ALLOWED = "raw_allowed"
    VALIDATED_ONLY = "validated_only"


class SaveOutcome(str, Enum):
    SAVED = "saved"
    SAVED_RAW = "saved_raw"
    DUPLICATE = "duplicate"
