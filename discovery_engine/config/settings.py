"""Runtime settings and provider snapshot helpers."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

from discovery_engine.domain.enums import SavePolicy
from discovery_engine.security.key_manager import LLM_KEY_NAMES, PLACES_KEY_NAMES, get_key_manager

_TRUTHY = {"1", "true", "yes", "on"}

DEFAULT_PREFETCH_WINDOW = 2
DEFAULT_MAX_CANDIDATES = 10


def _is_enabled(value: str | None) -> bool:
    return bool(value and value.strip().lower() in _TRUTHY)


def _env_int(name: str, default: int, *, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return max(minimum, int(raw))
    except ValueError:
        return default


def _env_float(name: str, default: float, *, minimum: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return max(minimum, float(raw))
    except ValueError:
        return default


def _env_save_policy() -> SavePolicy:
    raw = str(os.getenv("DISCOVERY_SAVE_POLICY") or "").strip().lower()
    try:
        return SavePolicy(raw)
    except ValueError:
        return SavePolicy.RAW_ALLOWED


def strict_external_data_enabled() -> bool:
    return _is_enabled(os.getenv("STRICT_EXTERNAL_DATA"))


class DiscoverySettings(BaseModel):
    prefetch_window: int = Field(default=DEFAULT_PREFETCH_WINDOW, ge=0)
    max_candidates: int = Field(default=DEFAULT_MAX_CANDIDATES, ge=1)
    save_policy: SavePolicy = SavePolicy.RAW_ALLOWED
    validation_timeout_seconds: float = Field(default=8.0, gt=0)
    validation_max_photos: int = Field(default=5, ge=0)
    session_ttl_seconds: float = Field(default=1800.0, gt=0)
    session_max_sessions: int = Field(default=200, ge=1)


def load_settings() -> DiscoverySettings:
    return DiscoverySettings(
        prefetch_window=_env_int("DISCOVERY_PREFETCH_WINDOW", DEFAULT_PREFETCH_WINDOW, minimum=0),
        max_candidates=_env_int("DISCOVERY_MAX_CANDIDATES", DEFAULT_MAX_CANDIDATES, minimum=1),
        save_policy=_env_save_policy(),
        validation_timeout_seconds=_env_float("VALIDATION_TIMEOUT_SECONDS", 8.0, minimum=0.5),
        validation_max_photos=_env_int("VALIDATION_MAX_PHOTOS", 5, minimum=0),
        session_ttl_seconds=_env_float("SESSION_TTL_SECONDS", 1800.0, minimum=1.0),
        session_max_sessions=_env_int("SESSION_MAX_SESSIONS", 200, minimum=1),
    )


class ProviderSnapshot(BaseModel):
    suggestion_provider: str = Field(default="mock")
    validation_provider: str = Field(default="mock")
    strict_external_data: bool = Field(default=False)


def resolve_provider_snapshot() -> ProviderSnapshot:
    km = get_key_manager()
    return ProviderSnapshot(
        suggestion_provider="llm" if km.has_any(LLM_KEY_NAMES) else "mock",
        validation_provider="places" if km.has_any(PLACES_KEY_NAMES) else "mock",
        strict_external_data=strict_external_data_enabled(),
    )


__all__ = [
    "DEFAULT_PREFETCH_WINDOW",
    "DiscoverySettings",
    "ProviderSnapshot",
    "load_settings",
    "resolve_provider_snapshot",
    "strict_external_data_enabled",
]
