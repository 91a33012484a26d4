"""Event store error types."""

from __future__ import annotations


class EventNotFoundError(LookupError):
    """Raised when an event id does not match a stored row."""

    def __init__(self, event_id: int) -> None:
        """Record the missing id for diagnostics."""
        self.event_id = event_id
        super().__init__(f"No event with id {event_id} exists.")


class UnsupportedPayloadTypeError(ValueError):
    """Raised when an envelope payload holds values JSON cannot represent."""

    def __init__(self, type_name: str) -> None:
        """Record the offending type name for diagnostics."""
        super().__init__(f"payload contains unsupported type {type_name}")
