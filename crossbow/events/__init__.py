"""Event store: the normalised record of every accepted webhook delivery."""

from __future__ import annotations

from .errors import EventNotFoundError, UnsupportedPayloadTypeError
from .filters import EventFilter, apply_event_filter, event_filter_clauses
from .storage import (
    Base,
    Event,
    UTCDateTime,
    create_event_engine,
    init_event_storage,
)
from .store import (
    EventEnvelope,
    EventStore,
    count_events,
    distinct_actions,
    distinct_actor_names,
    distinct_event_types,
    distinct_sources,
    mark_event_processed,
    search_events,
)

__all__ = [
    "Base",
    "Event",
    "EventEnvelope",
    "EventFilter",
    "EventNotFoundError",
    "EventStore",
    "UTCDateTime",
    "UnsupportedPayloadTypeError",
    "apply_event_filter",
    "count_events",
    "create_event_engine",
    "distinct_actions",
    "distinct_actor_names",
    "distinct_event_types",
    "distinct_sources",
    "event_filter_clauses",
    "init_event_storage",
    "mark_event_processed",
    "search_events",
]
