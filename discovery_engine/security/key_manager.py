"""Centralised API key access.

Every adapter reads provider keys through this module instead of calling
os.getenv directly, so that known key values can be scrubbed from log
lines and exception messages.
"""

from __future__ import annotations

import os
import threading
import time
from typing import Optional

from discovery_engine.security.redact import redact_sensitive
from discovery_engine.shared.exceptions import KeyMissingError

PLACES_KEY_NAMES = ("GOOGLE_PLACES_API_KEY", "GOOGLE_MAPS_API_KEY")
LLM_KEY_NAMES = ("GEMINI_API_KEY", "OPENAI_API_KEY", "LLM_API_KEY")


class _KeyEntry:
    __slots__ = ("value", "loaded_at", "source")

    def __init__(self, value: str, source: str):
        self.value = value
        self.loaded_at = time.time()
        self.source = source


class KeyManager:
    def __init__(self):
        self._keys: dict[str, _KeyEntry] = {}
        self._lock = threading.Lock()

    def get(self, name: str, *, required: bool = False) -> Optional[str]:
        with self._lock:
            entry = self._keys.get(name)
            if entry is None:
                raw = os.getenv(name, "").strip()
                if raw:
                    entry = _KeyEntry(value=raw, source="env")
                    self._keys[name] = entry
        if entry is not None:
            return entry.value
        if required:
            raise KeyMissingError(name)
        return None

    def first_of(self, names: tuple[str, ...]) -> tuple[str, str] | None:
        """Return (name, value) of the first configured key in priority order."""
        for name in names:
            value = self.get(name)
            if value:
                return name, value
        return None

    def get_places_key(self, *, required: bool = True) -> str:
        found = self.first_of(PLACES_KEY_NAMES)
        if found is None:
            if required:
                raise KeyMissingError(PLACES_KEY_NAMES[0])
            return ""
        return found[1]

    def has_key(self, name: str) -> bool:
        if name in self._keys:
            return True
        return bool(os.getenv(name, "").strip())

    def has_any(self, names: tuple[str, ...]) -> bool:
        return any(self.has_key(name) for name in names)

    @staticmethod
    def redact(value: str) -> str:
        """Keep only the first and last four characters."""
        if not value or len(value) <= 8:
            return "****"
        return value[:4] + "****" + value[-4:]

    def scrub_text(self, text: str) -> str:
        result = str(text) if text is not None else ""
        with self._lock:
            entries = list(self._keys.items())
        for name, entry in entries:
            if entry.value and entry.value in result:
                result = result.replace(entry.value, f"[{name}:***REDACTED***]")
        return redact_sensitive(result)

    def reload(self, name: str) -> None:
        """Force a re-read from the environment (key rotation, tests)."""
        raw = os.getenv(name, "").strip()
        with self._lock:
            if raw:
                self._keys[name] = _KeyEntry(value=raw, source="env")
            else:
                self._keys.pop(name, None)


_manager: Optional[KeyManager] = None


def get_key_manager() -> KeyManager:
    global _manager
    if _manager is None:
        _manager = KeyManager()
    return _manager
