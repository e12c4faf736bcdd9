"""Discovery domain: item state machine, records and duplicate matching."""

from discovery_engine.domain.duplicate_guard import (
    build_exclusion_list,
    filter_new_candidates,
    is_duplicate,
    normalize_name,
)
from discovery_engine.domain.enums import (
    Intent,
    ItemStatus,
    ItemType,
    SaveOutcome,
    SavePolicy,
    SessionState,
    SwipeDirection,
)
from discovery_engine.domain.exceptions import (
    ActionNotAllowed,
    DomainError,
    GenerationFailed,
    InvalidTransition,
    NegotiationClosed,
)
from discovery_engine.domain.models import (
    DiscoveryItem,
    Enrichment,
    FieldError,
    NormalizedItem,
    RawCandidate,
    SchedulePayload,
    TripBounds,
)

__all__ = [
    "ActionNotAllowed",
    "DiscoveryItem",
    "DomainError",
    "Enrichment",
    "FieldError",
    "GenerationFailed",
    "Intent",
    "InvalidTransition",
    "ItemStatus",
    "ItemType",
    "NegotiationClosed",
    "NormalizedItem",
    "RawCandidate",
    "SaveOutcome",
    "SavePolicy",
    "SchedulePayload",
    "SessionState",
    "SwipeDirection",
    "TripBounds",
    "build_exclusion_list",
    "filter_new_candidates",
    "is_duplicate",
    "normalize_name",
]
