"""In-memory repository and itinerary adapters."""

from discovery_engine.adapters.memory.store import MemoryItinerary, MemoryRepository, TripStore, get_trip_store

__all__ = ["MemoryItinerary", "MemoryRepository", "TripStore", "get_trip_store"]
