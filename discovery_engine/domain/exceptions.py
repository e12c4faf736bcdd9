"""Domain semantic exceptions."""


class DomainError(Exception):
    """Base domain exception."""


class GenerationFailed(DomainError):
    """Suggestion source failed or produced no usable candidates. Session-fatal."""


class InvalidTransition(DomainError):
    """Raised when an item status change breaks pending -> validating -> terminal."""

    def __init__(self, item_id: str, current: str, target: str):
        self.item_id = item_id
        self.current = current
        self.target = target
        super().__init__(f"item {item_id}: cannot move from {current} to {target}")


class ActionNotAllowed(DomainError):
    """User intent is not permitted for the current item or session state."""


class NegotiationClosed(DomainError):
    """Confirm or cancel was called on a negotiation that already concluded."""
