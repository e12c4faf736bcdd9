"""Shared cross-layer types and exceptions."""

from discovery_engine.shared.exceptions import ExternalServiceError, KeyMissingError, ToolError

__all__ = ["ToolError", "ExternalServiceError", "KeyMissingError"]
