"""Webhook receiving endpoints.

``POST /webhooks/github`` is the GitHub-only endpoint with mandatory headers.
``POST /webhook/{source}`` accepts any source. Both store the event, answer
200 at once and schedule projection to run after the response is sent.

Usage
-----
Register the resources on the Falcon app::

    app.add_route("/webhooks/github", GithubWebhookResource(ingestion, dispatcher))
    app.add_route("/webhook/{source}", SourceWebhookResource(ingestion, dispatcher))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from crossbow.webhooks.ingestion import WebhookIngestionService

__all__ = ["GithubWebhookResource", "ProjectionScheduler", "SourceWebhookResource"]


class ProjectionScheduler(typ.Protocol):
    """Anything that can project a stored event in the background."""

    async def run(self, event_id: int) -> object:
        """Project ``event_id``; must not raise."""
        ...


class _WebhookResource:
    def __init__(
        self, ingestion: WebhookIngestionService, projections: ProjectionScheduler
    ) -> None:
        """Bind the ingestion service and the projection scheduler."""
        self._ingestion = ingestion
        self._projections = projections

    def _schedule_projection(self, resp: Response, event_id: int) -> None:
        # Runs after the response is sent; its outcome never reaches the caller.
        resp.schedule(self._projections.run, event_id)


class GithubWebhookResource(_WebhookResource):
    """GitHub-only endpoint; every GitHub header is mandatory."""

    async def on_post(self, req: Request, resp: Response) -> None:
        """Handle POST /webhooks/github."""
        body = await req.stream.read()
        ingested = await self._ingestion.ingest_github_legacy(body, req.headers)
        resp.media = {"status": "received", "event_id": ingested.event_id}
        resp.status = HTTPStatus.OK
        self._schedule_projection(resp, ingested.event_id)


class SourceWebhookResource(_WebhookResource):
    """Multi-source endpoint keyed by the ``source`` path segment."""

    async def on_post(self, req: Request, resp: Response, *, source: str) -> None:
        """Handle POST /webhook/{source}."""
        body = await req.stream.read()
        ingested = await self._ingestion.ingest_generic(source, body, req.headers)
        resp.media = {
            "status": "received",
            "source": ingested.source,
            "event_id": ingested.event_id,
            "event_type": ingested.event_type,
        }
        resp.status = HTTPStatus.OK
        self._schedule_projection(resp, ingested.event_id)
