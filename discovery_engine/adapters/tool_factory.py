"""Concrete adapter selection and wiring."""

from __future__ import annotations

import logging
from typing import Optional

from discovery_engine.adapters.suggestion import mock as mock_suggestion
from discovery_engine.adapters.validation import mock as mock_validation
from discovery_engine.config.settings import DiscoverySettings, load_settings, strict_external_data_enabled
from discovery_engine.security.key_manager import LLM_KEY_NAMES, PLACES_KEY_NAMES, get_key_manager
from discovery_engine.security.redact import redact_sensitive
from discovery_engine.shared.exceptions import ToolError

_logger = logging.getLogger("trip-discovery.tools")


def _has_places_key() -> bool:
    return get_key_manager().has_any(PLACES_KEY_NAMES)


def _has_llm_key() -> bool:
    return get_key_manager().has_any(LLM_KEY_NAMES)


def get_suggestion_source():
    if _has_llm_key():
        try:
            from discovery_engine.adapters.suggestion.llm import LLMSuggestionSource

            return LLMSuggestionSource()
        except Exception as exc:
            if strict_external_data_enabled():
                raise ToolError("suggestion", f"Failed to load LLM adapter: {redact_sensitive(str(exc))}") from None
            _logger.warning("Failed to load LLM suggestion adapter, fallback to mock: %s", redact_sensitive(str(exc)))
    elif strict_external_data_enabled():
        raise ToolError("suggestion", "STRICT_EXTERNAL_DATA=true requires an LLM API key")
    return mock_suggestion


def get_validation_provider(settings: Optional[DiscoverySettings] = None):
    settings = settings or load_settings()
    if _has_places_key():
        try:
            from discovery_engine.adapters.validation.places import PlacesValidationProvider

            return PlacesValidationProvider(
                timeout=settings.validation_timeout_seconds,
                max_photos=settings.validation_max_photos,
            )
        except Exception as exc:
            if strict_external_data_enabled():
                raise ToolError("validation", f"Failed to load Places adapter: {redact_sensitive(str(exc))}") from None
            _logger.warning("Failed to load Places adapter, fallback to mock: %s", redact_sensitive(str(exc)))
    elif strict_external_data_enabled():
        raise ToolError("validation", "STRICT_EXTERNAL_DATA=true requires GOOGLE_PLACES_API_KEY")
    return mock_validation


__all__ = ["get_suggestion_source", "get_validation_provider"]
