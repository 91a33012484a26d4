"""Typed filter builder for event search and counting.

Both :func:`apply_event_filter` consumers (the search and the count query)
compile predicates through :func:`event_filter_clauses`, so a listing and its
total can never disagree.

Example:
-------
Search GitHub pushes that mention a branch name::

    event_filter = EventFilter(source="github", event_type="push", search="main")
    stmt = apply_event_filter(select(Event), event_filter)

"""

from __future__ import annotations

import dataclasses
import typing as typ

from sqlalchemy import String, cast

from crossbow.events.storage import Event

if typ.TYPE_CHECKING:
    from sqlalchemy import ColumnElement, Select

__all__ = ["EventFilter", "apply_event_filter", "event_filter_clauses"]


@dataclasses.dataclass(frozen=True, slots=True)
class EventFilter:
    """Optional, conjunctive predicates over stored events.

    Attributes
    ----------
    source
        Exact match on the originating system.
    event_type
        Exact match on the event classification.
    action
        Exact match on the event action.
    actor_name
        Exact match on the actor name.
    processed
        Match the projection state when not ``None``.
    search
        Case-insensitive substring matched against the serialised raw payload.
        An empty string is treated as absent.
    repository_id
        Match events linked to a projected repository.

    """

    source: str | None = None
    event_type: str | None = None
    action: str | None = None
    actor_name: str | None = None
    processed: bool | None = None
    search: str | None = None
    repository_id: int | None = None


def event_filter_clauses(
    event_filter: EventFilter,
) -> list[ColumnElement[bool]]:
    """Compile ``event_filter`` into parameterised SQL clauses."""
    clauses: list[ColumnElement[bool]] = []
    if event_filter.source is not None:
        clauses.append(Event.source == event_filter.source)
    if event_filter.event_type is not None:
        clauses.append(Event.event_type == event_filter.event_type)
    if event_filter.action is not None:
        clauses.append(Event.action == event_filter.action)
    if event_filter.actor_name is not None:
        clauses.append(Event.actor_name == event_filter.actor_name)
    if event_filter.processed is not None:
        clauses.append(Event.processed.is_(event_filter.processed))
    if event_filter.repository_id is not None:
        clauses.append(Event.repository_id == event_filter.repository_id)
    if event_filter.search:
        clauses.append(
            cast(Event.raw_event, String).icontains(
                event_filter.search, autoescape=True
            )
        )
    return clauses


SelectT = typ.TypeVar("SelectT", bound="Select[typ.Any]")


def apply_event_filter(
    stmt: SelectT, event_filter: EventFilter
) -> SelectT:
    """Return ``stmt`` restricted by every predicate in ``event_filter``."""
    clauses = event_filter_clauses(event_filter)
    return stmt.where(*clauses) if clauses else stmt
