"""Liveness and readiness probes.

``/health`` never touches the database. ``/ready`` runs ``SELECT 1`` when a
session factory is configured and reports 503 if the database cannot answer.

Usage
-----
Register health endpoints on the Falcon app::

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(session_factory))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from crossbow.logging import get_logger, log_warning

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

__all__ = ["HealthResource", "ReadyResource"]

logger = get_logger(__name__)


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe resource returning ``{"status": "ready"}``.

    Parameters
    ----------
    session_factory
        Factory used for the database probe. Without one the service runs
        in health-only mode and is always ready.

    """

    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession] | None = None
    ) -> None:
        """Store the optional session factory used for the probe."""
        self._session_factory = session_factory

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response populated with readiness status.

        """
        if self._session_factory is not None and not await self._database_ready():
            resp.media = {"status": "unavailable"}
            resp.status = HTTPStatus.SERVICE_UNAVAILABLE
            return

        resp.media = {"status": "ready"}
        resp.status = HTTPStatus.OK

    async def _database_ready(self) -> bool:
        factory = typ.cast("async_sessionmaker[AsyncSession]", self._session_factory)
        try:
            async with factory() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            log_warning(logger, "Readiness probe failed: %s", exc)
            return False
        return True
