"""Google Places validation provider.

Environment: GOOGLE_PLACES_API_KEY (or GOOGLE_MAPS_API_KEY)
API reference: https://developers.google.com/maps/documentation/places/web-service/text-search

Photo media URLs need the API key, so photos are resolved here with
``skipHttpRedirect`` and only the returned ``photoUri`` leaves the adapter.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from discovery_engine.domain.duplicate_guard import normalize_name
from discovery_engine.domain.models import Enrichment
from discovery_engine.infrastructure.cache import MemoryCache, enrichment_cache, make_cache_key
from discovery_engine.security.http_client import SecureHttpClient
from discovery_engine.security.key_manager import get_key_manager
from discovery_engine.shared.exceptions import KeyMissingError, ToolError

_logger = logging.getLogger("trip-discovery.places")

_SEARCH_URL = "https://places.googleapis.com/v1/places:searchText"
_PHOTO_MEDIA_URL = "https://places.googleapis.com/v1/{name}/media"
_PHOTO_PARAMS = {"maxHeightPx": 800, "maxWidthPx": 800, "skipHttpRedirect": "true"}
_FIELD_MASK = ",".join(
    (
        "places.id",
        "places.displayName",
        "places.formattedAddress",
        "places.rating",
        "places.userRatingCount",
        "places.photos",
        "places.currentOpeningHours",
        "places.priceLevel",
        "places.location",
        "places.businessStatus",
    )
)

_PRICE_LEVELS = {
    "PRICE_LEVEL_FREE": 0,
    "PRICE_LEVEL_INEXPENSIVE": 1,
    "PRICE_LEVEL_MODERATE": 2,
    "PRICE_LEVEL_EXPENSIVE": 3,
    "PRICE_LEVEL_VERY_EXPENSIVE": 4,
}

_FALLBACK_IMAGES = {
    "museum": "https://images.unsplash.com/photo-1554907984-15263bfd63bd?auto=format&fit=crop&q=80&w=800",
    "park": "https://images.unsplash.com/photo-1519331379826-f10be5486c6f?auto=format&fit=crop&q=80&w=800",
    "church": "https://images.unsplash.com/photo-1548625149-fc4a29cf7092?auto=format&fit=crop&q=80&w=800",
    "monument": "https://images.unsplash.com/photo-1568797629192-789acf8e4df3?auto=format&fit=crop&q=80&w=800",
    "beach": "https://images.unsplash.com/photo-1507525428034-b723cf961d3e?auto=format&fit=crop&q=80&w=800",
    "market": "https://images.unsplash.com/photo-1555529669-e69e7aa0ba9d?auto=format&fit=crop&q=80&w=800",
    "viewpoint": "https://images.unsplash.com/photo-1519681393784-d120267933ba?auto=format&fit=crop&q=80&w=800",
}
_DEFAULT_IMAGE = "https://images.unsplash.com/photo-1469474968028-56623f02e42e?auto=format&fit=crop&q=80&w=800"

_CLOSED_STATUSES = {"CLOSED_PERMANENTLY"}


def parse_price_level(raw: Optional[str]) -> Optional[int]:
    if not raw:
        return None
    return _PRICE_LEVELS.get(raw)


def fallback_image(category: str) -> str:
    return _FALLBACK_IMAGES.get(normalize_name(category), _DEFAULT_IMAGE)


def photo_names(place: dict[str, Any], limit: int) -> list[str]:
    """Photo resource names (``places/<id>/photos/<ref>``), at most ``limit``."""
    names: list[str] = []
    for ref in (place.get("photos") or [])[:limit]:
        name = ref.get("name") if isinstance(ref, dict) else None
        if name:
            names.append(str(name))
    return names


def place_to_enrichment(place: dict[str, Any], *, photos: tuple[str, ...] = (), category: str = "") -> Enrichment:
    hours = place.get("currentOpeningHours") or {}
    location = place.get("location") or {}
    return Enrichment(
        place_id=str(place.get("id") or ""),
        address=str(place.get("formattedAddress") or ""),
        photos=photos or (fallback_image(category),),
        rating=place.get("rating"),
        user_ratings_total=int(place.get("userRatingCount") or 0),
        price_level=parse_price_level(place.get("priceLevel")),
        open_now=hours.get("openNow"),
        opening_hours=tuple(hours.get("weekdayDescriptions") or ()),
        lat=location.get("latitude"),
        lon=location.get("longitude"),
    )


class PlacesValidationProvider:
    """One Text Search call per candidate; successful lookups are cached across sessions."""

    def __init__(
        self,
        *,
        timeout: float = 8.0,
        max_photos: int = 5,
        language: str = "en",
        cache: Optional[MemoryCache] = None,
        http: Optional[SecureHttpClient] = None,
    ):
        self._max_photos = max_photos
        self._language = language
        self._cache = cache if cache is not None else enrichment_cache
        # Single attempt per candidate.
        self._http = http or SecureHttpClient(timeout=timeout, max_retries=0, tool_name="places")

    def _api_key(self) -> str:
        try:
            return get_key_manager().get_places_key(required=True)
        except KeyMissingError:
            raise ToolError("places", "GOOGLE_PLACES_API_KEY is not configured") from None

    def validate_candidate(self, name: str, city: str) -> Enrichment:
        cache_key = make_cache_key("places", normalize_name(name), normalize_name(city), self._max_photos)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        key = self._api_key()
        data = self._http.post_json(
            _SEARCH_URL,
            payload={"textQuery": f"{name} {city}", "languageCode": self._language, "maxResultCount": 1},
            headers={
                "Content-Type": "application/json",
                "X-Goog-Api-Key": key,
                "X-Goog-FieldMask": _FIELD_MASK,
            },
        )
        places = data.get("places") or []
        if not places:
            raise ToolError("places", f"place not found: {name}")
        place = places[0]
        if place.get("businessStatus") in _CLOSED_STATUSES:
            raise ToolError("places", f"{name} is permanently closed")

        photos = self._resolve_photos(photo_names(place, self._max_photos), key)
        enrichment = place_to_enrichment(place, photos=photos)
        self._cache.set(cache_key, enrichment)
        return enrichment

    def _resolve_photos(self, names: list[str], key: str) -> tuple[str, ...]:
        """Public photo URIs for the given resource names. Unresolvable photos are dropped."""
        urls: list[str] = []
        for name in names:
            try:
                data = self._http.get(
                    _PHOTO_MEDIA_URL.format(name=name),
                    params=_PHOTO_PARAMS,
                    headers={"X-Goog-Api-Key": key},
                )
            except ToolError as exc:
                _logger.warning("Photo %s unavailable: %s", name, exc.detail)
                continue
            uri = str(data.get("photoUri") or "")
            if uri and key not in uri:
                urls.append(uri)
        return tuple(urls)
