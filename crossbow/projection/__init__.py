"""Projection of stored webhook events into domain entities."""

from __future__ import annotations

from .dispatcher import ProjectionDispatcher
from .errors import ProjectionError, ProjectionReason
from .projector import EventProjector, ProjectionResult, get_projection, register

__all__ = [
    "EventProjector",
    "ProjectionDispatcher",
    "ProjectionError",
    "ProjectionReason",
    "ProjectionResult",
    "get_projection",
    "register",
]
