"""Webhook ingestion: authenticate, normalise and persist one delivery.

The service performs all synchronous work of a webhook request. Projection is
not started here; the HTTP resource schedules it once the response is ready.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ
import uuid

import msgspec
from sqlalchemy.exc import SQLAlchemyError

from crossbow.domain.queries import find_repository_by_github_id
from crossbow.events.store import EventEnvelope, EventStore
from crossbow.logging import get_logger, log_error, log_info, log_warning
from crossbow.webhooks.adapters import (
    GITHUB_DELIVERY_HEADER,
    GITHUB_EVENT_HEADER,
    GITHUB_SIGNATURE_HEADER,
    adapter_for,
    normalise_headers,
)
from crossbow.webhooks.errors import (
    EventPersistError,
    InvalidPayloadError,
    MissingHeaderError,
    SignatureVerificationError,
)
from crossbow.webhooks.signature import verify_signature

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from crossbow.events.storage import Event
    from crossbow.webhooks.adapters import Headers

logger = get_logger(__name__)


@dc.dataclass(frozen=True, slots=True)
class IngestedEvent:
    """Summary of a stored delivery, returned to the HTTP layer."""

    event_id: int
    source: str
    event_type: str
    delivery_id: uuid.UUID


def decode_body(body: bytes) -> typ.Any:  # noqa: ANN401
    """Decode a JSON request body; any JSON value is accepted.

    Raises
    ------
    InvalidPayloadError
        If ``body`` is not valid JSON.

    """
    try:
        return msgspec.json.decode(body)
    except msgspec.DecodeError as exc:
        raise InvalidPayloadError(str(exc)) from exc


def _repository_github_id(payload: object) -> int | None:
    if not isinstance(payload, dict):
        return None
    repository = payload.get("repository")
    if not isinstance(repository, dict):
        return None
    github_id = repository.get("id")
    if isinstance(github_id, int) and not isinstance(github_id, bool):
        return github_id
    return None


class WebhookIngestionService:
    """Turn raw webhook requests into stored events.

    Parameters
    ----------
    session_factory
        Async session factory for the event and domain tables.
    github_secret
        Shared secret used to verify GitHub HMAC signatures.

    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        github_secret: str,
    ) -> None:
        """Bind storage and the GitHub webhook secret."""
        self._session_factory = session_factory
        self._store = EventStore(session_factory)
        self._github_secret = github_secret

    async def ingest_github_legacy(
        self, body: bytes, headers: Headers
    ) -> IngestedEvent:
        """Accept a delivery on the GitHub-only endpoint.

        Event type, delivery id and signature headers are mandatory here and
        the signature is checked before the body is parsed.

        Raises
        ------
        MissingHeaderError
            If a mandatory header is absent or the delivery id is not a UUID.
        SignatureVerificationError
            If the signature does not match the body.
        InvalidPayloadError
            If the body is not JSON.
        EventPersistError
            If the event cannot be stored.

        """
        headers = normalise_headers(headers)
        event_type = headers.get(GITHUB_EVENT_HEADER)
        if event_type is None:
            raise MissingHeaderError("X-GitHub-Event")
        adapter = adapter_for("github")
        delivery_id = adapter.delivery_id(headers)
        if delivery_id is None:
            raise MissingHeaderError("X-GitHub-Delivery", malformed=True)
        signature = headers.get(GITHUB_SIGNATURE_HEADER)
        if signature is None:
            raise MissingHeaderError("X-Hub-Signature-256")

        if not verify_signature(self._github_secret, body, signature):
            log_warning(
                logger, "Invalid webhook signature for delivery %s", delivery_id
            )
            raise SignatureVerificationError.invalid()

        payload = self._decode("github", body)
        actor = adapter.actor(payload)
        envelope = EventEnvelope(
            source="github",
            event_type=event_type,
            action=adapter.action(payload),
            actor_name=actor.name,
            actor_email=actor.email,
            actor_id=actor.id,
            raw_event=payload,
            delivery_id=delivery_id,
            signature=signature,
            repository_id=await self._lookup_repository(payload),
        )
        return await self._persist(envelope)

    async def ingest_generic(
        self, source: str, body: bytes, headers: Headers
    ) -> IngestedEvent:
        """Accept a delivery from any source.

        Missing delivery ids are generated. Only sources whose adapter
        requires a signature (GitHub) are authenticated; every other source
        is accepted unauthenticated.
        """
        headers = normalise_headers(headers)
        adapter = adapter_for(source)
        payload = self._decode(source, body)

        delivery_id = adapter.delivery_id(headers) or uuid.uuid4()
        event_type = adapter.event_type(payload, headers)
        signature = adapter.signature(headers)

        if adapter.requires_signature:
            self._authenticate(body, signature, delivery_id)

        actor = adapter.actor(payload)
        repository_id = (
            await self._lookup_repository(payload)
            if adapter.requires_signature
            else None
        )
        envelope = EventEnvelope(
            source=source,
            event_type=event_type,
            action=adapter.action(payload),
            actor_name=actor.name,
            actor_email=actor.email,
            actor_id=actor.id,
            raw_event=payload,
            delivery_id=delivery_id,
            signature=signature,
            repository_id=repository_id,
        )
        return await self._persist(envelope)

    def _decode(self, source: str, body: bytes) -> typ.Any:  # noqa: ANN401
        try:
            return decode_body(body)
        except InvalidPayloadError as exc:
            log_error(
                logger,
                "Failed to parse webhook payload from %s: %s",
                source,
                exc.detail,
            )
            raise

    def _authenticate(
        self, body: bytes, signature: str | None, delivery_id: uuid.UUID
    ) -> None:
        if signature is None:
            log_warning(logger, "Missing signature for delivery %s", delivery_id)
            raise SignatureVerificationError.missing()
        if not verify_signature(self._github_secret, body, signature):
            log_warning(logger, "Invalid signature for delivery %s", delivery_id)
            raise SignatureVerificationError.invalid()

    async def _lookup_repository(self, payload: object) -> int | None:
        """Resolve an already-projected repository; errors are logged only."""
        github_id = _repository_github_id(payload)
        if github_id is None:
            return None
        try:
            async with self._session_factory() as session:
                repository = await find_repository_by_github_id(session, github_id)
        except SQLAlchemyError as exc:
            log_warning(
                logger,
                "Repository lookup failed for github_id %d: %s",
                github_id,
                exc,
            )
            return None
        return repository.id if repository is not None else None

    async def _persist(self, envelope: EventEnvelope) -> IngestedEvent:
        try:
            event: Event = await self._store.create(envelope)
        except SQLAlchemyError as exc:
            log_error(
                logger,
                "Failed to store event from %s",
                envelope.source,
                exc_info=exc,
            )
            raise EventPersistError(envelope.source) from exc

        log_info(
            logger,
            "Stored event #%d from %s (type: %s, delivery: %s)",
            event.id,
            envelope.source,
            envelope.event_type,
            envelope.delivery_id,
        )
        return IngestedEvent(
            event_id=event.id,
            source=envelope.source,
            event_type=envelope.event_type,
            delivery_id=envelope.delivery_id,
        )
