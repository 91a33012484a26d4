"""Crossbow runtime entrypoint.

This module provides the ASGI application factory used by Granian. It
delegates to :func:`crossbow.api.app.create_app` for application
construction while keeping the ``crossbow.runtime:create_app`` entrypoint
stable.

When ``CROSSBOW_DATABASE_URL`` is set the runtime loads the full
:class:`~crossbow.config.ServiceConfig`, builds a pooled engine and creates
the event and domain tables on lifespan startup. Otherwise it starts in
health-only mode.

Configuration is driven by environment variables:

- ``CROSSBOW_DATABASE_URL``: Database connection URL
- ``CROSSBOW_GITHUB_WEBHOOK_SECRET``: Shared secret for GitHub signatures
- ``CROSSBOW_HOST``: Bind address (default ``0.0.0.0``)
- ``CROSSBOW_PORT``: Listen port (default ``3010``)
- ``CROSSBOW_MAX_CONNECTIONS``: Database pool size (default ``5``)
- ``CROSSBOW_LOG_LEVEL``: Log level (default ``INFO``)

Run the service directly with ``python -m crossbow.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

from crossbow.config import (
    ConfigError,
    ServiceConfig,
    database_configured,
    listen_address_from_env,
)
from crossbow.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi
    from sqlalchemy.ext.asyncio import AsyncEngine

__all__ = ["StorageBootstrap", "create_app", "main"]

logger = get_logger(__name__)


class StorageBootstrap:
    """Lifespan middleware creating tables before the first request."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def process_startup(self, scope: object, event: object) -> None:
        """Create the event and domain tables."""
        from crossbow.events.storage import init_event_storage

        await init_event_storage(self._engine)
        log_info(logger, "Database schema ready")

    async def process_shutdown(self, scope: object, event: object) -> None:
        """Release pooled connections."""
        await self._engine.dispose()


def _engine_options(config: ServiceConfig) -> dict[str, typ.Any]:
    # SQLite uses a static pool without size limits.
    if config.database_url.startswith("sqlite"):
        return {}
    return {"pool_size": config.max_connections}


def create_app() -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    Raises
    ------
    ConfigError
        If ``CROSSBOW_DATABASE_URL`` is set but the rest of the environment
        is incomplete.

    """
    from crossbow.api.app import create_app as _create_api_app

    if not database_configured():
        return _create_api_app()

    from sqlalchemy.ext.asyncio import async_sessionmaker

    from crossbow.api.app import AppDependencies
    from crossbow.events import create_event_engine

    config = ServiceConfig.from_env()
    engine = create_event_engine(config.database_url, **_engine_options(config))
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    app = _create_api_app(
        AppDependencies(
            session_factory=session_factory,
            github_webhook_secret=config.github_webhook_secret,
        )
    )
    app.add_middleware(StorageBootstrap(engine))
    return app


def main() -> None:
    """Start the Crossbow server using Granian.

    Without ``CROSSBOW_DATABASE_URL`` the server starts in health-only mode.
    Exits with status 1 when the environment is invalid.
    """
    from granian import Granian
    from granian.constants import Interfaces

    log_level_str = os.environ.get("CROSSBOW_LOG_LEVEL", "INFO")
    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid CROSSBOW_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    try:
        host, port = listen_address_from_env()
        config = ServiceConfig.from_env() if database_configured() else None
    except ConfigError as exc:
        # Validation failures need no traceback.
        log_error(logger, "Invalid configuration: %s", exc)
        raise SystemExit(1) from exc

    if config is None:
        log_info(
            logger,
            "Starting Crossbow on %s:%d in health-only mode (log_level=%s)",
            host,
            port,
            normalized_level,
        )
    else:
        log_info(
            logger,
            "Starting Crossbow on %s (log_level=%s, max_connections=%d)",
            config.server_address,
            normalized_level,
            config.max_connections,
        )

    server = Granian(
        "crossbow.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
