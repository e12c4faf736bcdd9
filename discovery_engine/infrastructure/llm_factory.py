"""LLM factory: decides from the environment whether generation uses a model.

Supported keys (priority order):
  GEMINI_API_KEY  -> Gemini through its OpenAI-compatible endpoint
  OPENAI_API_KEY  -> OpenAI
  LLM_API_KEY     -> any compatible endpoint (set LLM_BASE_URL)

Optional:
  LLM_MODEL    - model name, defaults per provider
  LLM_BASE_URL - override the endpoint
"""

from __future__ import annotations

import os
import threading
from typing import Optional

from openai import OpenAI

from discovery_engine.security.key_manager import LLM_KEY_NAMES, get_key_manager

_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
_GEMINI_DEFAULT_MODEL = "gemini-2.0-flash"
_OPENAI_BASE_URL = "https://api.openai.com/v1"
_OPENAI_DEFAULT_MODEL = "gpt-4o-mini"

_PROVIDER_BY_KEY = {
    "GEMINI_API_KEY": ("gemini", _GEMINI_BASE_URL, _GEMINI_DEFAULT_MODEL),
    "OPENAI_API_KEY": ("openai", _OPENAI_BASE_URL, _OPENAI_DEFAULT_MODEL),
    "LLM_API_KEY": ("llm_compatible", _OPENAI_BASE_URL, _OPENAI_DEFAULT_MODEL),
}


class LLMHandle:
    """Client plus the model it should be called with."""

    def __init__(self, client: OpenAI, model: str, provider: str):
        self.client = client
        self.model = model
        self.provider = provider

    def complete(self, prompt: str, *, temperature: float = 0.7) -> str:
        resp = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
        )
        return resp.choices[0].message.content or ""


def _resolve_config() -> tuple[str, str, str, str] | None:
    """Return (provider, api_key, base_url, model) or None."""
    found = get_key_manager().first_of(LLM_KEY_NAMES)
    if found is None:
        return None
    key_name, api_key = found
    provider, base_url, model = _PROVIDER_BY_KEY[key_name]
    return (
        provider,
        api_key,
        os.getenv("LLM_BASE_URL", base_url),
        os.getenv("LLM_MODEL", model),
    )


def llm_timeout_seconds() -> float:
    try:
        return float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))
    except ValueError:
        return 30.0


_llm_instance: Optional[LLMHandle] = None
_llm_resolved = False
_llm_lock = threading.Lock()


def get_llm() -> Optional[LLMHandle]:
    """Singleton LLM handle, or None when no key is configured."""
    global _llm_instance, _llm_resolved
    with _llm_lock:
        if _llm_resolved:
            return _llm_instance

        cfg = _resolve_config()
        if cfg is not None:
            provider, api_key, base_url, model = cfg
            client = OpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=llm_timeout_seconds(),
                max_retries=1,
            )
            _llm_instance = LLMHandle(client, model, provider)
        _llm_resolved = True
        return _llm_instance


def reset_llm() -> None:
    """Drop the cached handle (tests, key rotation)."""
    global _llm_instance, _llm_resolved
    with _llm_lock:
        _llm_instance = None
        _llm_resolved = False


def resolve_llm_provider() -> str:
    cfg = _resolve_config()
    return cfg[0] if cfg else "template"


def is_llm_available() -> bool:
    return _resolve_config() is not None
