"""Shared (non-domain) exceptions."""


class ToolError(Exception):
    """External adapter invocation failed."""

    def __init__(self, tool: str, message: str):
        self.tool = tool
        self.detail = message
        super().__init__(f"[{tool}] {message}")


class ExternalServiceError(Exception):
    """External service rejected the request."""


class KeyMissingError(Exception):
    """Required key is missing."""

    def __init__(self, name: str):
        self.key_name = name
        super().__init__(f"Missing required API key: {name} (configure it in .env)")
