"""Infrastructure services and cross-cutting utilities."""

from discovery_engine.infrastructure.cache import MemoryCache, enrichment_cache, make_cache_key
from discovery_engine.infrastructure.logging import StructuredLogger, get_logger

__all__ = [
    "MemoryCache",
    "StructuredLogger",
    "enrichment_cache",
    "get_logger",
    "make_cache_key",
]
