"""pytest global fixtures: keep tests away from real providers."""

import pytest

_PROVIDER_KEYS = (
    "GOOGLE_PLACES_API_KEY",
    "GOOGLE_MAPS_API_KEY",
    "GEMINI_API_KEY",
    "OPENAI_API_KEY",
    "LLM_API_KEY",
)


@pytest.fixture(autouse=True)
def no_real_apis(monkeypatch):
    """Disable real LLM and Places calls so every test runs on mocks."""
    for key_name in _PROVIDER_KEYS:
        monkeypatch.delenv(key_name, raising=False)
    monkeypatch.delenv("STRICT_EXTERNAL_DATA", raising=False)
    monkeypatch.delenv("DISCOVERY_SAVE_POLICY", raising=False)
    monkeypatch.delenv("DISCOVERY_PREFETCH_WINDOW", raising=False)
    # Reset cached keys and the LLM singleton so each test starts clean.
    from discovery_engine.infrastructure.cache import enrichment_cache
    from discovery_engine.infrastructure.llm_factory import reset_llm
    from discovery_engine.security.key_manager import get_key_manager

    km = get_key_manager()
    for key_name in _PROVIDER_KEYS:
        km.reload(key_name)

    reset_llm()
    enrichment_cache.clear()
    yield
    reset_llm()
