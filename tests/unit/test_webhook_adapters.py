"""Unit tests for per-source webhook metadata extraction."""

from __future__ import annotations

import uuid

import pytest

from crossbow.webhooks.adapters import (
    Actor,
    GenericAdapter,
    GithubAdapter,
    adapter_for,
    extract_action,
    extract_actor,
    extract_delivery_id,
    extract_event_type,
    extract_signature,
    normalise_headers,
)

DELIVERY = "72d3162e-cc78-11e3-81ab-4c9367dc0958"


class TestAdapterRegistry:
    """Adapter selection by source name."""

    def test_known_sources_have_dedicated_adapters(self) -> None:
        """github, gitlab and auth0 resolve to their own adapters."""
        for source in ("github", "gitlab", "auth0"):
            assert adapter_for(source).name == source, f"wrong adapter for {source}"

    def test_unknown_source_falls_back_to_generic(self) -> None:
        """Arbitrary sources use the generic adapter."""
        assert isinstance(adapter_for("custom-ci"), GenericAdapter)

    def test_only_github_requires_a_signature(self) -> None:
        """Signature enforcement is limited to GitHub."""
        assert isinstance(adapter_for("github"), GithubAdapter)
        assert adapter_for("github").requires_signature is True
        for source in ("gitlab", "auth0", "custom-ci"):
            assert adapter_for(source).requires_signature is False, source


def test_normalise_headers_lowercases_names() -> None:
    """Header names are matched case-insensitively."""
    headers = normalise_headers({"X-GitHub-Event": "push", "X-Other": "1"})
    assert headers == {"x-github-event": "push", "x-other": "1"}


class TestEventType:
    """extract_event_type per source."""

    def test_github_uses_event_header(self) -> None:
        """GitHub reads X-GitHub-Event."""
        headers = {"x-github-event": "pull_request"}
        assert extract_event_type("github", {}, headers) == "pull_request"

    def test_github_without_header_is_unknown(self) -> None:
        """GitHub has no payload field to fall back on."""
        assert extract_event_type("github", {"type": "push"}, {}) == "unknown"

    def test_gitlab_header_wins_over_object_kind(self) -> None:
        """GitLab prefers X-Gitlab-Event."""
        headers = {"x-gitlab-event": "Push Hook"}
        payload = {"object_kind": "push"}
        assert extract_event_type("gitlab", payload, headers) == "Push Hook"

    def test_gitlab_falls_back_to_object_kind(self) -> None:
        """Without the header GitLab uses object_kind."""
        assert extract_event_type("gitlab", {"object_kind": "merge_request"}, {}) == (
            "merge_request"
        )

    @pytest.mark.parametrize(
        ("payload", "expected"),
        [
            ({"type": "s", "event": "login"}, "s"),
            ({"event": "login"}, "login"),
            ({}, "unknown"),
            ({"type": 3}, "unknown"),
        ],
    )
    def test_auth0_candidates(self, payload: dict[str, object], expected: str) -> None:
        """Auth0 tries type then event, then falls back to unknown."""
        assert extract_event_type("auth0", payload, {}) == expected

    @pytest.mark.parametrize(
        ("payload", "expected"),
        [
            ({"type": "build", "event": "x"}, "build"),
            ({"event": "deploy"}, "deploy"),
            ({"event_type": "release"}, "release"),
            ({}, "webhook"),
            (["not", "an", "object"], "webhook"),
            ("scalar", "webhook"),
        ],
    )
    def test_generic_candidates(self, payload: object, expected: str) -> None:
        """Generic sources try type, event, event_type, then webhook."""
        assert extract_event_type("custom-ci", payload, {}) == expected


class TestDeliveryId:
    """extract_delivery_id per source."""

    def test_github_delivery_parsed_as_uuid(self) -> None:
        """A well-formed GitHub delivery header becomes a UUID."""
        headers = {"x-github-delivery": DELIVERY}
        assert extract_delivery_id("github", headers) == uuid.UUID(DELIVERY)

    def test_gitlab_uses_event_uuid_header(self) -> None:
        """GitLab sends X-Gitlab-Event-UUID."""
        headers = {"x-gitlab-event-uuid": DELIVERY}
        assert extract_delivery_id("gitlab", headers) == uuid.UUID(DELIVERY)

    def test_malformed_delivery_is_none(self) -> None:
        """A delivery header that is not a UUID is ignored."""
        assert extract_delivery_id("github", {"x-github-delivery": "abc"}) is None

    def test_generic_sources_have_no_delivery_header(self) -> None:
        """Sources without a delivery header yield None."""
        headers = {"x-github-delivery": DELIVERY}
        assert extract_delivery_id("custom-ci", headers) is None


class TestSignature:
    """extract_signature per source."""

    def test_github_signature_header(self) -> None:
        """GitHub reads X-Hub-Signature-256."""
        headers = {"x-hub-signature-256": "sha256=abc"}
        assert extract_signature("github", headers) == "sha256=abc"

    def test_gitlab_token_header(self) -> None:
        """GitLab reads X-Gitlab-Token."""
        assert extract_signature("gitlab", {"x-gitlab-token": "tok"}) == "tok"

    def test_unrecognised_source_has_no_signature(self) -> None:
        """Generic sources never report a signature."""
        headers = {"x-hub-signature-256": "sha256=abc"}
        assert extract_signature("custom-ci", headers) is None


class TestAction:
    """extract_action."""

    def test_action_field(self) -> None:
        """The action field is preferred."""
        payload = {"action": "opened", "event_action": "x"}
        assert extract_action("github", payload) == "opened"

    def test_event_action_fallback(self) -> None:
        """event_action is used when action is absent."""
        assert extract_action("gitlab", {"event_action": "merged"}) == "merged"

    def test_non_string_action_is_ignored(self) -> None:
        """Only JSON strings count as actions."""
        assert extract_action("github", {"action": 1}) is None


class TestActor:
    """extract_actor per source."""

    def test_github_prefers_sender(self) -> None:
        """GitHub reads sender.login for the name and id."""
        payload = {
            "sender": {"login": "marina", "id": 7},
            "pusher": {"name": "someone", "email": "p@example.com"},
        }
        assert extract_actor("github", payload) == Actor(
            name="marina", email="p@example.com", id="marina"
        )

    def test_github_push_falls_back_to_pusher(self) -> None:
        """Without a sender the pusher name is used."""
        payload = {"pusher": {"name": "marina", "email": "m@example.com"}}
        assert extract_actor("github", payload) == Actor(
            name="marina", email="m@example.com", id=None
        )

    def test_github_integer_sender_id(self) -> None:
        """A numeric sender id is rendered as text when no login exists."""
        assert extract_actor("github", {"sender": {"id": 42}}).id == "42"

    def test_gitlab_flat_fields(self) -> None:
        """GitLab push hooks carry flat user_* keys."""
        payload = {
            "user_username": "jdoe",
            "user_email": "j@example.com",
            "user_id": 12,
        }
        assert extract_actor("gitlab", payload) == Actor("jdoe", "j@example.com", "12")

    def test_gitlab_nested_user(self) -> None:
        """Merge request hooks nest the user object."""
        payload = {"user": {"username": "jdoe", "email": "j@example.com", "id": 12}}
        assert extract_actor("gitlab", payload) == Actor("jdoe", "j@example.com", "12")

    def test_gitlab_boolean_id_is_ignored(self) -> None:
        """Booleans are not integers for id lookups."""
        assert extract_actor("gitlab", {"user_id": True}).id is None

    def test_auth0_user_object(self) -> None:
        """Auth0 reads the nested user object."""
        payload = {
            "user": {"name": "Ada", "email": "ada@example.com", "user_id": "auth0|1"}
        }
        assert extract_actor("auth0", payload) == Actor(
            "Ada", "ada@example.com", "auth0|1"
        )

    def test_generic_top_level_fields(self) -> None:
        """Generic sources read top-level actor fields."""
        payload = {"user": "bot", "email": "bot@example.com", "user_id": "b-1"}
        assert extract_actor("custom-ci", payload) == Actor(
            "bot", "bot@example.com", "b-1"
        )

    @pytest.mark.parametrize("payload", [[], "text", 3, None, {"sender": "marina"}])
    def test_unmatched_shapes_yield_empty_actor(self, payload: object) -> None:
        """Paths crossing non-objects produce no identity."""
        assert extract_actor("github", payload) == Actor()
