"""Behavioural coverage for webhook ingestion and projection."""

from __future__ import annotations

import typing as typ

import falcon
import falcon.testing
from pytest_bdd import given, scenario, then, when
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from crossbow.api import AppDependencies, create_app
from crossbow.events import Event, create_event_engine, init_event_storage
from tests.helpers import run_async, wait_until
from tests.helpers.payloads import encode, github_headers, push_payload

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    AppCheck = typ.Callable[
        [falcon.testing.ASGIConductor, async_sessionmaker[AsyncSession]],
        typ.Awaitable[typ.Any],
    ]


class IngestionContext(typ.TypedDict, total=False):
    """Shared mutable scenario state."""

    database_url: str
    secret: str
    path: str
    body: bytes
    headers: dict[str, str]
    status: str
    response: dict[str, typ.Any]


@scenario(
    "../webhook_ingestion.feature",
    "A signed GitHub push is stored and projected",
)
def test_github_push_is_projected() -> None:
    """Wrap the pytest-bdd scenario."""


@scenario(
    "../webhook_ingestion.feature",
    "A custom source event is stored without projection rows",
)
def test_custom_source_is_stored() -> None:
    """Custom sources are logged but never projected into domain rows."""


@scenario(
    "../webhook_ingestion.feature",
    "A GitHub delivery with a bad signature is rejected",
)
def test_bad_signature_is_rejected() -> None:
    """Signature failures never reach the event store."""


def _with_app(context: IngestionContext, check: AppCheck) -> typ.Any:  # noqa: ANN401
    """Run ``check`` against a freshly built app on its own event loop."""

    async def _run() -> typ.Any:  # noqa: ANN401
        engine = create_event_engine(context["database_url"])
        try:
            await init_event_storage(engine)
            session_factory = async_sessionmaker(engine, expire_on_commit=False)
            app = create_app(
                AppDependencies(
                    session_factory=session_factory,
                    github_webhook_secret=context["secret"],
                )
            )
            async with falcon.testing.ASGIConductor(app) as conductor:
                return await check(conductor, session_factory)
        finally:
            await engine.dispose()

    return run_async(_run)


async def _event_processed(
    session_factory: async_sessionmaker[AsyncSession], event_id: int
) -> bool:
    async with session_factory() as session:
        event = await session.get(Event, event_id)
        return event is not None and event.processed


@given("an empty event store", target_fixture="ingestion_context")
def empty_store(database_url: str, webhook_secret: str) -> IngestionContext:
    """Provision a fresh database for the scenario."""
    return {"database_url": database_url, "secret": webhook_secret}


@given("a GitHub push delivery carrying two commits")
def github_push(ingestion_context: IngestionContext) -> None:
    """Sign a push payload with the configured secret."""
    body = encode(push_payload("a1", "b2"))
    ingestion_context["body"] = body
    ingestion_context["headers"] = github_headers(ingestion_context["secret"], body)


@given("a GitHub push delivery signed with the wrong secret")
def github_push_bad_signature(ingestion_context: IngestionContext) -> None:
    """Sign a push payload with a secret the service does not know."""
    body = encode(push_payload("a1"))
    ingestion_context["body"] = body
    ingestion_context["headers"] = github_headers("not-the-secret", body)


@given("a custom-ci delivery")
def custom_delivery(ingestion_context: IngestionContext) -> None:
    """Prepare an unauthenticated payload from a custom source."""
    ingestion_context["path"] = "/webhook/custom-ci"
    ingestion_context["body"] = encode(
        {"event_type": "deployment", "action": "finished", "status": "ok"}
    )
    ingestion_context["headers"] = {"Content-Type": "application/json"}


def _post(ingestion_context: IngestionContext, path: str) -> None:
    async def _check(
        conductor: falcon.testing.ASGIConductor,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        result = await conductor.simulate_post(
            path,
            body=ingestion_context["body"],
            headers=ingestion_context["headers"],
        )
        ingestion_context["status"] = result.status
        ingestion_context["response"] = result.json
        event_id = result.json.get("event_id")
        if result.status == falcon.HTTP_200 and event_id is not None:
            # Projection runs after the response; keep the loop alive for it.
            await wait_until(lambda: _event_processed(session_factory, event_id))

    _with_app(ingestion_context, _check)


@when("the delivery is posted to the GitHub webhook endpoint")
def post_github(ingestion_context: IngestionContext) -> None:
    """POST the delivery to the legacy GitHub route."""
    _post(ingestion_context, "/webhooks/github")


@when("the delivery is posted to the source webhook endpoint")
def post_source(ingestion_context: IngestionContext) -> None:
    """POST the delivery to the generic per-source route."""
    _post(ingestion_context, ingestion_context["path"])


@then("the response acknowledges the stored event")
def assert_acknowledged(ingestion_context: IngestionContext) -> None:
    """The service answers 200 with the new event id."""
    assert ingestion_context["status"] == falcon.HTTP_200, ingestion_context.get(
        "response"
    )
    response = ingestion_context["response"]
    assert response["status"] == "received"
    assert isinstance(response["event_id"], int)


@then("the response is unauthorised")
def assert_unauthorised(ingestion_context: IngestionContext) -> None:
    """Bad signatures are rejected with 401."""
    assert ingestion_context["status"] == falcon.HTTP_401
    assert ingestion_context["response"]["reason"] == "invalid"


@then("the event is marked processed")
def assert_processed(ingestion_context: IngestionContext) -> None:
    """The event detail view reports the projection outcome."""
    event_id = ingestion_context["response"]["event_id"]

    async def _check(
        conductor: falcon.testing.ASGIConductor,
        _session_factory: async_sessionmaker[AsyncSession],
    ) -> dict[str, typ.Any]:
        result = await conductor.simulate_get(f"/events/{event_id}")
        assert result.status == falcon.HTTP_200
        return result.json

    event = _with_app(ingestion_context, _check)
    assert event["processed"] is True, "event should be processed"


@then("one repository with two commits is visible")
def assert_repository(ingestion_context: IngestionContext) -> None:
    """The dashboard lists the projected repository and its commits."""

    async def _check(
        conductor: falcon.testing.ASGIConductor,
        _session_factory: async_sessionmaker[AsyncSession],
    ) -> dict[str, typ.Any]:
        listing = await conductor.simulate_get("/repositories")
        [repo] = listing.json["repositories"]
        detail = await conductor.simulate_get(f"/repositories/{repo['id']}")
        assert detail.status == falcon.HTTP_200
        return detail.json

    detail = _with_app(ingestion_context, _check)
    assert detail["repository"]["full_name"] == "octo/reef"
    assert detail["commits"]["total"] == 2


@then("no repositories are visible")
def assert_no_repositories(ingestion_context: IngestionContext) -> None:
    """Custom events leave the domain tables untouched."""

    async def _check(
        conductor: falcon.testing.ASGIConductor,
        _session_factory: async_sessionmaker[AsyncSession],
    ) -> int:
        result = await conductor.simulate_get("/repositories")
        return result.json["pagination"]["total_items"]

    assert _with_app(ingestion_context, _check) == 0


@then("the event store is empty")
def assert_empty(ingestion_context: IngestionContext) -> None:
    """Rejected deliveries are never stored."""

    async def _check(
        _conductor: falcon.testing.ASGIConductor,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> int:
        async with session_factory() as session:
            return int(
                await session.scalar(select(func.count()).select_from(Event)) or 0
            )

    assert _with_app(ingestion_context, _check) == 0
