"""Case-insensitive name matching against already-known items."""

from __future__ import annotations

from collections.abc import Iterable

from discovery_engine.domain.models import RawCandidate


def normalize_name(name: str) -> str:
    return str(name or "").strip().casefold()


def is_duplicate(name: str, existing_names: Iterable[str]) -> bool:
    norm = normalize_name(name)
    if not norm:
        return False
    return any(normalize_name(existing) == norm for existing in existing_names)


def build_exclusion_list(existing_names: Iterable[str]) -> list[str]:
    """Trimmed names to send as exclusions, one per normalized form, original order."""
    seen: set[str] = set()
    result: list[str] = []
    for raw in existing_names:
        norm = normalize_name(raw)
        if not norm or norm in seen:
            continue
        seen.add(norm)
        result.append(str(raw).strip())
    return result


def filter_new_candidates(
    candidates: Iterable[RawCandidate],
    existing_names: Iterable[str],
) -> list[RawCandidate]:
    """Drop candidates already in the repository or repeating an earlier candidate."""
    seen = {normalize_name(name) for name in existing_names}
    seen.discard("")
    result: list[RawCandidate] = []
    for candidate in candidates:
        norm = normalize_name(candidate.name)
        if not norm or norm in seen:
            continue
        seen.add(norm)
        result.append(candidate)
    return result
