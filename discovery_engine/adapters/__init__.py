"""Concrete adapters for suggestion, validation, repository and itinerary collaborators."""
