"""Unit tests for the crossbow.runtime module."""

from __future__ import annotations

import typing as typ
from http import HTTPStatus
from unittest import mock

import falcon.asgi
import falcon.testing
import pytest

from crossbow import runtime
from crossbow.runtime import StorageBootstrap, create_app
from tests.helpers import sqlite_url, wait_until
from tests.helpers.logs import record_module_logs

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every CROSSBOW_* variable for the test."""
    for name in (
        "CROSSBOW_DATABASE_URL",
        "CROSSBOW_GITHUB_WEBHOOK_SECRET",
        "CROSSBOW_HOST",
        "CROSSBOW_PORT",
        "CROSSBOW_MAX_CONNECTIONS",
        "CROSSBOW_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestHealthOnlyMode:
    """Without CROSSBOW_DATABASE_URL only the probes are served."""

    def test_create_app_returns_falcon_app(self, clean_env: pytest.MonkeyPatch) -> None:
        """create_app returns a Falcon ASGI App instance."""
        assert isinstance(create_app(), falcon.asgi.App)

    def test_health_and_ready(self, clean_env: pytest.MonkeyPatch) -> None:
        """Both probes answer 200."""
        client = falcon.testing.TestClient(create_app())
        assert client.simulate_get("/health").status_code == HTTPStatus.OK
        assert client.simulate_get("/ready").json == {"status": "ready"}

    def test_webhooks_absent(self, clean_env: pytest.MonkeyPatch) -> None:
        """Webhook routes need a database."""
        client = falcon.testing.TestClient(create_app())
        result = client.simulate_post("/webhook/custom-ci", body=b"{}")
        assert result.status_code == HTTPStatus.NOT_FOUND


class TestDatabaseMode:
    """With CROSSBOW_DATABASE_URL the full service starts."""

    @pytest.mark.asyncio
    async def test_tables_created_on_startup(
        self, clean_env: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """Lifespan startup creates the schema before the first webhook."""
        clean_env.setenv("CROSSBOW_DATABASE_URL", sqlite_url(tmp_path))
        clean_env.setenv("CROSSBOW_GITHUB_WEBHOOK_SECRET", "s3cret")

        app = create_app()
        async with falcon.testing.ASGIConductor(app) as conductor:
            result = await conductor.simulate_post(
                "/webhook/custom-ci", body=b'{"event": "build"}'
            )
            assert result.status_code == HTTPStatus.OK
            assert result.json["event_type"] == "build"
            event_id = result.json["event_id"]

            async def _processed() -> bool:
                event = await conductor.simulate_get(f"/events/{event_id}")
                return event.json["processed"] is True

            assert await wait_until(_processed), "event was never projected"

    def test_missing_secret_is_a_config_error(
        self, clean_env: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """A database without a webhook secret cannot start."""
        clean_env.setenv("CROSSBOW_DATABASE_URL", sqlite_url(tmp_path))
        with pytest.raises(runtime.ConfigError):
            create_app()


@pytest.mark.asyncio
async def test_storage_bootstrap_disposes_engine_on_shutdown() -> None:
    """Shutdown releases pooled connections."""
    engine = mock.MagicMock()
    engine.dispose = mock.AsyncMock()
    await StorageBootstrap(engine).process_shutdown({}, {})
    engine.dispose.assert_awaited_once()


class TestMain:
    """Tests for the Granian entry point."""

    @pytest.mark.parametrize(
        ("env", "expected"),
        [
            ({"CROSSBOW_PORT": "70000"}, "CROSSBOW_PORT"),
            ({"CROSSBOW_DATABASE_URL": "sqlite+aiosqlite:///x.db"}, "SECRET"),
        ],
        ids=["port-out-of-range", "database-without-secret"],
    )
    def test_invalid_config_exits_with_status_one(
        self, clean_env: pytest.MonkeyPatch, env: dict[str, str], expected: str
    ) -> None:
        """Invalid settings are reported and exit 1 before serving."""
        for name, value in env.items():
            clean_env.setenv(name, value)
        recorder = record_module_logs(clean_env, runtime)
        clean_env.setattr(runtime, "configure_logging", lambda level: ("INFO", False))

        with pytest.raises(SystemExit) as excinfo, mock.patch("granian.Granian"):
            runtime.main()

        assert excinfo.value.code == 1
        [message] = recorder.messages("ERROR")
        assert expected in message

    def test_serves_health_only_without_database(
        self, clean_env: pytest.MonkeyPatch
    ) -> None:
        """No database URL still starts the server for the probes."""
        clean_env.setenv("CROSSBOW_HOST", "127.0.0.1")
        clean_env.setattr(runtime, "configure_logging", lambda level: ("INFO", False))
        recorder = record_module_logs(clean_env, runtime)

        with mock.patch("granian.Granian") as granian:
            runtime.main()

        _args, kwargs = granian.call_args
        assert kwargs["address"] == "127.0.0.1"
        assert kwargs["port"] == 3010
        granian.return_value.serve.assert_called_once_with()
        assert recorder.messages("ERROR") == []
        [started] = recorder.messages("INFO")
        assert "health-only" in started

    def test_serves_with_configured_address(
        self, clean_env: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """Granian is started with the factory entry point."""
        clean_env.setenv("CROSSBOW_DATABASE_URL", sqlite_url(tmp_path))
        clean_env.setenv("CROSSBOW_GITHUB_WEBHOOK_SECRET", "s3cret")
        clean_env.setenv("CROSSBOW_PORT", "9000")
        clean_env.setattr(runtime, "configure_logging", lambda level: ("INFO", False))
        record_module_logs(clean_env, runtime)

        with mock.patch("granian.Granian") as granian:
            runtime.main()

        args, kwargs = granian.call_args
        assert args == ("crossbow.runtime:create_app",)
        assert kwargs["port"] == 9000
        assert kwargs["factory"] is True
        granian.return_value.serve.assert_called_once_with()
