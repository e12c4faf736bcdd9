"""Helpers for redacting sensitive values in logs and error strings."""

from __future__ import annotations

import re

_REDACTED = "***REDACTED***"

# Patterns whose secret part follows a recognisable prefix; the prefix is kept.
_PREFIXED_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?i)(?P<prefix>\b(?:key|api[_-]?key|token|secret|signature|password)\s*=\s*)(?P<value>[^&\s\"']+)"),
    re.compile(
        r"(?i)(?P<prefix>[\"']?(?:api[_-]?key|x-goog-api-key|token|secret|password)[\"']?\s*[:=]\s*[\"']?)"
        r"(?P<value>[^\"',\s}]+)"
    ),
    re.compile(r"(?i)(?P<prefix>\bauthorization\s*:\s*(?:bearer|basic)\s+)(?P<value>[^\s,;]+)"),
    re.compile(r"(?i)(?P<prefix>\bbearer\s+)(?P<value>[A-Za-z0-9._~+/=-]+)"),
)

# Patterns that are secrets in their entirety.
_FULL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bAIza[0-9A-Za-z_-]{20,}\b"),
    re.compile(r"\bsk-[A-Za-z0-9_-]{8,}\b"),
    re.compile(r"\beyJ[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\b"),
)


def redact_sensitive(text: str) -> str:
    """Redact common secret patterns while preserving surrounding context."""
    if not text:
        return text

    redacted = str(text)
    for pattern in _PREFIXED_PATTERNS:
        redacted = pattern.sub(lambda m: f"{m.group('prefix')}{_REDACTED}", redacted)
    for pattern in _FULL_PATTERNS:
        redacted = pattern.sub(_REDACTED, redacted)
    return redacted


__all__ = ["redact_sensitive"]
