"""Projection error types."""

from __future__ import annotations

import enum


class ProjectionReason(enum.StrEnum):
    """Machine-readable reasons for projection failures."""

    MISSING_FIELD = "missing_field"
    INVALID_TIMESTAMP = "invalid_timestamp"
    EVENT_NOT_FOUND = "event_not_found"
    ENTITY_PROJECTION_FAILED = "entity_projection_failed"


class ProjectionError(Exception):
    """Raised when an event cannot be projected into domain entities.

    A projection error aborts the whole event: nothing it would have written
    is committed and the event stays unprocessed.
    """

    def __init__(
        self,
        message: str,
        reason: ProjectionReason | str | None = None,
    ) -> None:
        """Store a machine-readable reason for programmatic handling."""
        super().__init__(message)
        self.reason = reason

    @classmethod
    def missing_field(cls, detail: str) -> ProjectionError:
        """Create an error for a required payload field that is absent."""
        return cls(
            f"required payload field missing or invalid: {detail}",
            reason=ProjectionReason.MISSING_FIELD,
        )

    @classmethod
    def invalid_timestamp(cls, field: str) -> ProjectionError:
        """Create an error for an unparseable required timestamp."""
        return cls(
            f"{field} is not an ISO-8601 timestamp with an offset",
            reason=ProjectionReason.INVALID_TIMESTAMP,
        )

    @classmethod
    def event_not_found(cls, event_id: int) -> ProjectionError:
        """Create an error when the event to project no longer exists."""
        return cls(
            f"event {event_id} does not exist",
            reason=ProjectionReason.EVENT_NOT_FOUND,
        )

    @classmethod
    def entity_projection_failed(cls, exc: Exception) -> ProjectionError:
        """Wrap an unexpected failure raised while writing entities."""
        return cls(
            f"entity projection failed: {exc}",
            reason=ProjectionReason.ENTITY_PROJECTION_FAILED,
        )
