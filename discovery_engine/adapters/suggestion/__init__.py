"""Suggestion source adapters."""
