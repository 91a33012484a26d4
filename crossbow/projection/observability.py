"""Structured log events for the projection lifecycle.

Projection runs after the webhook response has been sent, so these log lines
are the only place a failure is ever reported. Each line starts with the
event type in brackets followed by ``key=value`` pairs for log aggregators.
"""

from __future__ import annotations

import enum

from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)

from crossbow.logging import get_logger, log_error, log_info, log_warning
from crossbow.projection.errors import ProjectionError, ProjectionReason

logger = get_logger(__name__)


class ProjectionEventType(enum.StrEnum):
    """Structured log event types for projection runs."""

    COMPLETED = "projection.completed"
    SKIPPED = "projection.skipped"
    FAILED = "projection.failed"
    DROPPED = "projection.dropped"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in alerts."""

    INVALID_PAYLOAD = "invalid_payload"
    DATABASE_CONNECTIVITY = "database_connectivity"
    DATA_INTEGRITY = "data_integrity"
    DATABASE_ERROR = "database_error"
    UNKNOWN = "unknown"


_PAYLOAD_REASONS = frozenset(
    {ProjectionReason.MISSING_FIELD, ProjectionReason.INVALID_TIMESTAMP}
)

_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (OperationalError, ErrorCategory.DATABASE_CONNECTIVITY),
    (InterfaceError, ErrorCategory.DATABASE_CONNECTIVITY),
    (IntegrityError, ErrorCategory.DATA_INTEGRITY),
    (SQLAlchemyError, ErrorCategory.DATABASE_ERROR),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize a projection failure for alert routing.

    Wrapped projection errors are categorized by their underlying cause.
    """
    if isinstance(exc, ProjectionError):
        if exc.reason in _PAYLOAD_REASONS:
            return ErrorCategory.INVALID_PAYLOAD
        if exc.__cause__ is not None:
            return categorize_error(exc.__cause__)
        return ErrorCategory.UNKNOWN

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


class ProjectionEventLogger:
    """Emit structured projection events via femtologging."""

    def log_completed(
        self,
        *,
        event_id: int,
        event_type: str,
        repository_id: int | None,
        entities: int,
    ) -> None:
        """Log a projection that wrote domain rows and marked the event."""
        log_info(
            logger,
            "[%s] event_id=%d event_type=%s repository_id=%s entities=%d",
            ProjectionEventType.COMPLETED,
            event_id,
            event_type,
            repository_id,
            entities,
        )

    def log_skipped(self, *, event_id: int, source: str, event_type: str) -> None:
        """Log an event marked processed without any projection."""
        log_info(
            logger,
            "[%s] event_id=%d source=%s event_type=%s",
            ProjectionEventType.SKIPPED,
            event_id,
            source,
            event_type,
        )

    def log_failed(self, *, event_id: int, error: BaseException) -> None:
        """Log a projection failure; the event stays unprocessed."""
        log_error(
            logger,
            "[%s] event_id=%d error_type=%s error_category=%s reason=%s "
            "error_message=%s",
            ProjectionEventType.FAILED,
            event_id,
            type(error).__name__,
            categorize_error(error),
            getattr(error, "reason", None),
            str(error),
            exc_info=error,
        )

    def log_dropped(self, *, pending: int) -> None:
        """Log projections abandoned by process shutdown."""
        log_warning(
            logger,
            "[%s] pending=%d",
            ProjectionEventType.DROPPED,
            pending,
        )
