"""Query-string parsing for the read-only listing endpoints.

Blank values are treated as absent so an empty filter form field never
becomes an equality predicate against the empty string.
"""

from __future__ import annotations

import typing as typ

from crossbow.api.errors import InvalidInputError
from crossbow.common.pagination import (
    DEFAULT_PAGE,
    DEFAULT_PER_PAGE,
    MAX_PER_PAGE,
    PageParams,
)
from crossbow.events.filters import EventFilter

if typ.TYPE_CHECKING:
    from falcon.asgi import Request

# Largest value a signed 64-bit SQL integer column or OFFSET accepts.
MAX_SQL_INTEGER = 2**63 - 1
MAX_PAGE = MAX_SQL_INTEGER // MAX_PER_PAGE

_TRUE = frozenset({"true", "1", "yes"})
_FALSE = frozenset({"false", "0", "no"})


def optional_str(req: Request, name: str) -> str | None:
    """Return the stripped parameter, or ``None`` when absent or blank."""
    raw = req.get_param(name)
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def optional_int(req: Request, name: str) -> int | None:
    """Return the parameter as an integer, or ``None`` when absent or blank.

    Raises
    ------
    InvalidInputError
        If the value is present but not an integer, or does not fit a
        64-bit SQL integer.

    """
    raw = optional_str(req, name)
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError as exc:
        raise InvalidInputError("must be an integer", field=name) from exc
    if abs(value) > MAX_SQL_INTEGER:
        raise InvalidInputError("is out of range", field=name)
    return value


def optional_bool(req: Request, name: str) -> bool | None:
    """Return the parameter as a boolean, or ``None`` when absent or blank.

    Raises
    ------
    InvalidInputError
        If the value is not one of ``true``/``false`` (or ``1``/``0``).

    """
    raw = optional_str(req, name)
    if raw is None:
        return None
    lowered = raw.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise InvalidInputError("must be true or false", field=name)


def page_params(req: Request) -> PageParams:
    """Read ``page`` and ``per_page`` with their defaults.

    Raises
    ------
    InvalidInputError
        If ``page`` is beyond :data:`MAX_PAGE`, whose offset would overflow.

    """
    page = optional_int(req, "page")
    if page is not None and page > MAX_PAGE:
        raise InvalidInputError(f"must be at most {MAX_PAGE}", field="page")
    per_page = optional_int(req, "per_page")
    return PageParams(
        page=DEFAULT_PAGE if page is None else page,
        per_page=DEFAULT_PER_PAGE if per_page is None else per_page,
    )


def event_filter(req: Request) -> EventFilter:
    """Build an :class:`EventFilter` from the ``/events`` query string."""
    return EventFilter(
        source=optional_str(req, "source"),
        event_type=optional_str(req, "event_type"),
        action=optional_str(req, "action"),
        actor_name=optional_str(req, "actor_name"),
        processed=optional_bool(req, "processed"),
        search=optional_str(req, "search"),
        repository_id=optional_int(req, "repository_id"),
    )
