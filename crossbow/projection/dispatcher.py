"""Detached, in-process projection after the webhook response is sent.

Every accepted webhook schedules exactly one projection through
:meth:`ProjectionDispatcher.run`. There is no queue, no retry and no
cancellation: a projection still running when the process stops is lost and
its event stays unprocessed until an operator replays it.
"""

from __future__ import annotations

import asyncio
import typing as typ

from crossbow.projection.observability import ProjectionEventLogger

if typ.TYPE_CHECKING:
    from crossbow.projection.projector import EventProjector, ProjectionResult


class ProjectionDispatcher:
    """Run projections detached from the request and track them while in flight."""

    def __init__(
        self,
        projector: EventProjector,
        *,
        event_logger: ProjectionEventLogger | None = None,
    ) -> None:
        """Bind the projector used for every scheduled event."""
        self._projector = projector
        self._events = event_logger or ProjectionEventLogger()
        self._in_flight: set[asyncio.Task[typ.Any]] = set()

    @property
    def in_flight(self) -> int:
        """Number of projections currently running."""
        return len(self._in_flight)

    async def run(self, event_id: int) -> ProjectionResult | None:
        """Project ``event_id``; failures are logged by the projector."""
        task = asyncio.current_task()
        if task is not None:
            self._in_flight.add(task)
        try:
            return await self._projector.run(event_id)
        finally:
            if task is not None:
                self._in_flight.discard(task)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait until every in-flight projection has finished.

        Used by tests and operator tooling; the HTTP runtime never drains.
        """
        current = asyncio.current_task()
        pending = {task for task in self._in_flight if task is not current}
        if pending:
            await asyncio.wait(pending, timeout=timeout)

    async def process_shutdown(self, scope: object, event: object) -> None:
        """Report projections abandoned by shutdown without waiting for them."""
        del scope, event
        if self._in_flight:
            self._events.log_dropped(pending=len(self._in_flight))
