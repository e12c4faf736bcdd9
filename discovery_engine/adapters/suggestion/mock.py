"""Mock suggestion source: local JSON rows, then generic per-city fallbacks."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from discovery_engine.domain.duplicate_guard import normalize_name
from discovery_engine.domain.enums import ItemType
from discovery_engine.domain.models import RawCandidate
from discovery_engine.shared.exceptions import ToolError
from discovery_engine.tools.interfaces import SuggestionRequest

DATA_FILE = Path(__file__).resolve().parents[2] / "data" / "suggestions.json"
_cache: Optional[list[dict]] = None

_FALLBACKS: dict[ItemType, list[tuple[str, str, str, str]]] = {
    ItemType.ATTRACTION: [
        ("Historic Center of {city}", "Historic", "Walk the old streets and the colonial architecture.", "The best way to feel the city's cultural core."),
        ("Municipal Market of {city}", "Market", "Local flavours and handicrafts in one place.", "An authentic food experience."),
        ("{city} Viewpoint", "Viewpoint", "Panoramic view over the city and surroundings.", "The best photos of the trip are taken here."),
    ],
    ItemType.RESTAURANT: [
        ("Central Market Food Hall, {city}", "Market", "Stalls serving regional specialities.", "Try several local dishes in one stop."),
        ("Old Town Bistro, {city}", "Bistro", "Neighbourhood bistro with a short daily menu.", "A relaxed dinner close to the main sights."),
    ],
}


def _load_data() -> list[dict]:
    global _cache
    if _cache is not None:
        return _cache
    if not DATA_FILE.exists():
        raise ToolError("mock_suggestion", f"Data file not found: {DATA_FILE}")
    with open(DATA_FILE, encoding="utf-8") as f:
        _cache = json.load(f)
    return _cache


def _fallbacks(city: str, item_type: ItemType) -> list[RawCandidate]:
    rows = _FALLBACKS.get(item_type, _FALLBACKS[ItemType.ATTRACTION])
    return [
        RawCandidate(name=name.format(city=city), category=category, description=description, rationale=rationale)
        for name, category, description, rationale in rows
    ]


def generate_suggestions(params: SuggestionRequest) -> list[RawCandidate]:
    city_key = normalize_name(params.city)
    excluded = {normalize_name(name) for name in params.exclude_names}
    results: list[RawCandidate] = []
    for raw in _load_data():
        if raw.get("city") != city_key or raw.get("item_type") != params.item_type.value:
            continue
        if normalize_name(raw["name"]) in excluded:
            continue
        results.append(
            RawCandidate(
                name=raw["name"],
                category=raw.get("category", ""),
                description=raw.get("description", ""),
                rationale=raw.get("rationale", ""),
            )
        )
        if len(results) >= params.max_results:
            break
    if not results:
        results = [c for c in _fallbacks(params.city, params.item_type) if normalize_name(c.name) not in excluded]
    return results[: params.max_results]
