"""Per-source extraction of event metadata from webhook requests.

Each supported source has one adapter describing where its headers and
payload keep the event type, delivery id, signature and actor. Adapters are
selected by source name from a closed registry; unknown sources fall back to
:class:`GenericAdapter`.

Payload lookups only accept values of the expected JSON type. A path that
crosses a non-object, or ends on a value of another type, yields ``None``.

Example:
-------
Extract metadata for a GitLab push::

    headers = normalise_headers(req.headers)
    event_type = extract_event_type("gitlab", payload, headers)
    actor = extract_actor("gitlab", payload)

"""

from __future__ import annotations

import typing as typ
import uuid

__all__ = [
    "Actor",
    "Auth0Adapter",
    "GenericAdapter",
    "GithubAdapter",
    "GitlabAdapter",
    "SourceAdapter",
    "adapter_for",
    "extract_action",
    "extract_actor",
    "extract_delivery_id",
    "extract_event_type",
    "extract_signature",
    "normalise_headers",
]

Headers: typ.TypeAlias = typ.Mapping[str, str]
Path: typ.TypeAlias = tuple[str, ...]

GITHUB_EVENT_HEADER = "x-github-event"
GITHUB_DELIVERY_HEADER = "x-github-delivery"
GITHUB_SIGNATURE_HEADER = "x-hub-signature-256"
GITLAB_EVENT_HEADER = "x-gitlab-event"
GITLAB_DELIVERY_HEADER = "x-gitlab-event-uuid"
GITLAB_TOKEN_HEADER = "x-gitlab-token"


class Actor(typ.NamedTuple):
    """Best-effort identity of the user who triggered an event."""

    name: str | None = None
    email: str | None = None
    id: str | None = None


def normalise_headers(
    headers: typ.Mapping[str, str] | typ.Iterable[tuple[str, str]],
) -> dict[str, str]:
    """Return ``headers`` keyed by lowercase name."""
    items = headers.items() if isinstance(headers, typ.Mapping) else headers
    return {name.lower(): value for name, value in items}


def _lookup(payload: object, path: Path) -> object:
    node = payload
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _text(payload: object, *paths: Path) -> str | None:
    """Return the first string found along ``paths``."""
    for path in paths:
        value = _lookup(payload, path)
        if isinstance(value, str):
            return value
    return None


def _integer_text(payload: object, *paths: Path) -> str | None:
    """Return the first integer found along ``paths``, rendered as text."""
    for path in paths:
        value = _lookup(payload, path)
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
    return None


def _parse_uuid(value: str | None) -> uuid.UUID | None:
    if value is None:
        return None
    try:
        return uuid.UUID(value.strip())
    except ValueError:
        return None


class SourceAdapter:
    """Extraction rules shared by every source.

    Subclasses override the class attributes, and :meth:`actor` when the
    source keeps identities in its own place.
    """

    name: typ.ClassVar[str] = "generic"
    requires_signature: typ.ClassVar[bool] = False
    event_header: typ.ClassVar[str | None] = None
    delivery_header: typ.ClassVar[str | None] = None
    signature_header: typ.ClassVar[str | None] = None
    event_type_fields: typ.ClassVar[tuple[str, ...]] = ()
    event_type_fallback: typ.ClassVar[str] = "unknown"

    def delivery_id(self, headers: Headers) -> uuid.UUID | None:
        """Return the source-supplied delivery id if present and well formed."""
        if self.delivery_header is None:
            return None
        return _parse_uuid(headers.get(self.delivery_header))

    def event_type(self, payload: object, headers: Headers) -> str:
        """Return the event type from the header, payload fields or fallback."""
        if self.event_header is not None:
            header_value = headers.get(self.event_header)
            if header_value is not None:
                return header_value
        found = _text(payload, *((field,) for field in self.event_type_fields))
        return found if found is not None else self.event_type_fallback

    def action(self, payload: object) -> str | None:
        """Return ``action`` or ``event_action`` from the payload."""
        return _text(payload, ("action",), ("event_action",))

    def signature(self, headers: Headers) -> str | None:
        """Return the raw signature or token header value."""
        if self.signature_header is None:
            return None
        return headers.get(self.signature_header)

    def actor(self, payload: object) -> Actor:
        """Return the actor identity."""
        return Actor(
            name=_text(payload, ("actor",), ("user",), ("username",)),
            email=_text(payload, ("email",)),
            id=_text(payload, ("actor_id",), ("user_id",)),
        )


class GithubAdapter(SourceAdapter):
    """GitHub: header-driven, HMAC-signed deliveries."""

    name = "github"
    requires_signature = True
    event_header = GITHUB_EVENT_HEADER
    delivery_header = GITHUB_DELIVERY_HEADER
    signature_header = GITHUB_SIGNATURE_HEADER

    def actor(self, payload: object) -> Actor:
        """Prefer the sender, falling back to the pusher on push events."""
        return Actor(
            name=_text(payload, ("sender", "login"), ("pusher", "name")),
            email=_text(payload, ("sender", "email"), ("pusher", "email")),
            id=_text(payload, ("sender", "login"))
            or _integer_text(payload, ("sender", "id")),
        )


class GitlabAdapter(SourceAdapter):
    """GitLab: event header with ``object_kind`` fallback, token header."""

    name = "gitlab"
    event_header = GITLAB_EVENT_HEADER
    delivery_header = GITLAB_DELIVERY_HEADER
    signature_header = GITLAB_TOKEN_HEADER
    event_type_fields = ("object_kind",)

    def actor(self, payload: object) -> Actor:
        """Read the flat ``user_*`` keys first, then the nested ``user``."""
        return Actor(
            name=_text(payload, ("user_username",), ("user", "username")),
            email=_text(payload, ("user_email",), ("user", "email")),
            id=_integer_text(payload, ("user_id",), ("user", "id")),
        )


class Auth0Adapter(SourceAdapter):
    """Auth0 log streams: typed payloads, no delivery or signature header."""

    name = "auth0"
    event_type_fields = ("type", "event")

    def actor(self, payload: object) -> Actor:
        """Read the identity from the nested ``user`` object."""
        return Actor(
            name=_text(payload, ("user", "name"), ("user", "username")),
            email=_text(payload, ("user", "email")),
            id=_text(payload, ("user", "user_id"), ("user", "id")),
        )


class GenericAdapter(SourceAdapter):
    """Fallback for any caller-supplied source."""

    name = "generic"
    event_type_fields = ("type", "event", "event_type")
    event_type_fallback = "webhook"


_GENERIC = GenericAdapter()
_ADAPTERS: dict[str, SourceAdapter] = {
    adapter.name: adapter
    for adapter in (GithubAdapter(), GitlabAdapter(), Auth0Adapter())
}


def adapter_for(source: str) -> SourceAdapter:
    """Return the adapter registered for ``source`` or the generic fallback."""
    return _ADAPTERS.get(source, _GENERIC)


def extract_delivery_id(source: str, headers: Headers) -> uuid.UUID | None:
    """Return the delivery id header parsed as a UUID, if usable."""
    return adapter_for(source).delivery_id(headers)


def extract_event_type(source: str, payload: object, headers: Headers) -> str:
    """Return the event type; never empty-handed thanks to the fallback."""
    return adapter_for(source).event_type(payload, headers)


def extract_action(source: str, payload: object) -> str | None:
    """Return the event action, if any."""
    return adapter_for(source).action(payload)


def extract_signature(source: str, headers: Headers) -> str | None:
    """Return the raw signature header for sources that send one."""
    return adapter_for(source).signature(headers)


def extract_actor(source: str, payload: object) -> Actor:
    """Return the actor identity using the source's preference order."""
    return adapter_for(source).actor(payload)
