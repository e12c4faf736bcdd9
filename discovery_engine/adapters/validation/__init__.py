"""Validation provider adapters."""
