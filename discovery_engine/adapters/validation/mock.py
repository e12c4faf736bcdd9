"""Mock validation provider backed by a local JSON fixture."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from discovery_engine.domain.duplicate_guard import normalize_name
from discovery_engine.domain.models import Enrichment
from discovery_engine.shared.exceptions import ToolError

DATA_FILE = Path(__file__).resolve().parents[2] / "data" / "places.json"
_index: Optional[dict[tuple[str, str], dict]] = None


def _load_index() -> dict[tuple[str, str], dict]:
    global _index
    if _index is not None:
        return _index
    if not DATA_FILE.exists():
        raise ToolError("mock_validation", f"Data file not found: {DATA_FILE}")
    with open(DATA_FILE, encoding="utf-8") as f:
        rows = json.load(f)
    _index = {(normalize_name(row["city"]), normalize_name(row["name"])): row for row in rows}
    return _index


def validate_candidate(name: str, city: str) -> Enrichment:
    row = _load_index().get((normalize_name(city), normalize_name(name)))
    if row is None:
        raise ToolError("mock_validation", f"place not found: {name}")
    return Enrichment(
        place_id=row.get("place_id", ""),
        address=row.get("address", ""),
        photos=tuple(row.get("photos", [])),
        rating=row.get("rating"),
        user_ratings_total=int(row.get("user_ratings_total", 0)),
        price_level=row.get("price_level"),
        open_now=row.get("open_now"),
        opening_hours=tuple(row.get("opening_hours", [])),
        lat=row.get("lat"),
        lon=row.get("lon"),
    )
