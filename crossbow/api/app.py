"""Application factory for the Crossbow Falcon ASGI application.

Usage
-----
Create a health-only app (no database)::

    app = create_app()

Create the full webhook service::

    deps = AppDependencies(
        session_factory=session_factory,
        github_webhook_secret="s3cret",
    )
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from crossbow.api.errors import register_error_handlers
from crossbow.api.health.resources import HealthResource, ReadyResource

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from crossbow.api.webhooks.resources import ProjectionScheduler

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    session_factory
        Async session factory for the event and domain tables. Without it
        only ``/health`` and ``/ready`` are registered.
    github_webhook_secret
        Shared secret for GitHub signature verification.
    projections
        Background projection runner. Defaults to a
        :class:`~crossbow.projection.dispatcher.ProjectionDispatcher` over
        ``session_factory``.

    """

    session_factory: async_sessionmaker[AsyncSession] | None = None
    github_webhook_secret: str = ""
    projections: ProjectionScheduler | None = None


def _default_projections(
    session_factory: async_sessionmaker[AsyncSession],
) -> ProjectionScheduler:
    from crossbow.projection.dispatcher import ProjectionDispatcher
    from crossbow.projection.projector import EventProjector

    return ProjectionDispatcher(EventProjector(session_factory))


def _add_domain_routes(
    app: falcon.asgi.App,
    session_factory: async_sessionmaker[AsyncSession],
    dependencies: AppDependencies,
    projections: ProjectionScheduler,
) -> None:
    from crossbow.api.dashboard.resources import (
        EventCollectionResource,
        EventItemResource,
        RepositoryCollectionResource,
        RepositoryItemResource,
        StatsResource,
    )
    from crossbow.api.params import MAX_SQL_INTEGER
    from crossbow.api.webhooks.resources import (
        GithubWebhookResource,
        SourceWebhookResource,
    )
    from crossbow.webhooks.ingestion import WebhookIngestionService

    # Ids outside the 64-bit column range match no route and answer 404.
    row_id = f"int(min=1, max={MAX_SQL_INTEGER})"
    ingestion = WebhookIngestionService(
        session_factory, github_secret=dependencies.github_webhook_secret
    )
    app.add_route("/webhooks/github", GithubWebhookResource(ingestion, projections))
    app.add_route("/webhook/{source}", SourceWebhookResource(ingestion, projections))
    app.add_route("/events", EventCollectionResource())
    app.add_route(f"/events/{{event_id:{row_id}}}", EventItemResource())
    app.add_route("/repositories", RepositoryCollectionResource())
    app.add_route(
        f"/repositories/{{repository_id:{row_id}}}", RepositoryItemResource()
    )
    app.add_route("/stats", StatsResource())


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies. When ``None`` or lacking a
        session factory, only health endpoints are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    session_factory = dependencies.session_factory if dependencies else None
    middleware: list[object] = []
    projections: ProjectionScheduler | None = None

    if dependencies is not None and session_factory is not None:
        from crossbow.api.middleware import SQLAlchemySessionManager

        projections = dependencies.projections or _default_projections(
            session_factory
        )
        middleware.append(SQLAlchemySessionManager(session_factory))
        # Dispatchers report abandoned projections on lifespan shutdown.
        if hasattr(projections, "process_shutdown"):
            middleware.append(projections)

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(session_factory))

    if dependencies is not None and session_factory is not None:
        projections = typ.cast("ProjectionScheduler", projections)
        _add_domain_routes(app, session_factory, dependencies, projections)

    register_error_handlers(app)
    return app
