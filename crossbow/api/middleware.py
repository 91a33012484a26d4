"""Request-scoped read sessions for the dashboard resources.

Resources opt in by setting ``uses_session = True``. The middleware opens an
``AsyncSession`` once routing has matched such a resource and releases it
after the response is built. Dashboard views only read, so the session is
never committed; closing it ends the implicit transaction.

Webhook resources do not opt in: ingestion commits each event in its own
session before the response is produced.
"""

from __future__ import annotations

import typing as typ

from sqlalchemy.exc import SQLAlchemyError

from crossbow.logging import get_logger, log_error

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

__all__ = ["SQLAlchemySessionManager"]

logger = get_logger(__name__)


def _wants_session(resource: object) -> bool:
    return bool(getattr(resource, "uses_session", False))


class SQLAlchemySessionManager:
    """Attach ``req.context.session`` for resources that ask for one.

    Parameters
    ----------
    session_factory
        Async session factory bound to the application's database engine.

    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Store the factory used to open per-request sessions."""
        self._session_factory = session_factory

    async def process_resource(
        self,
        req: Request,
        _resp: Response,
        resource: object,
        _params: dict[str, typ.Any],
    ) -> None:
        """Open a session when the matched resource reads the database."""
        if resource is not None and _wants_session(resource):
            req.context.session = self._session_factory()

    async def process_response(
        self,
        req: Request,
        _resp: Response,
        _resource: object,
        req_succeeded: bool,  # noqa: FBT001
    ) -> None:
        """Release the request's session, if one was opened."""
        session: AsyncSession | None = getattr(req.context, "session", None)
        if session is None:
            return
        try:
            await session.close()
        except SQLAlchemyError:
            log_error(
                logger,
                "Failed to release session (request succeeded: %s)",
                req_succeeded,
                exc_info=True,
            )
            raise
