"""Process configuration loaded from ``CROSSBOW_*`` environment variables.

Usage
-----
Load the configuration once at start-up:

>>> import os
>>> os.environ["CROSSBOW_DATABASE_URL"] = "sqlite+aiosqlite:///crossbow.db"
>>> os.environ["CROSSBOW_GITHUB_WEBHOOK_SECRET"] = "s3cret"
>>> config = ServiceConfig.from_env()
>>> config.server_address
'0.0.0.0:3010'

"""

from __future__ import annotations

import dataclasses as dc
import os

__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "ConfigError",
    "ServiceConfig",
    "database_configured",
    "listen_address_from_env",
    "parse_port",
]

DEFAULT_HOST = "0.0.0.0"  # noqa: S104 - bind all interfaces for container
DEFAULT_PORT = 3010
_MIN_PORT = 1
_MAX_PORT = 65535


class ConfigError(ValueError):
    """Raised when the environment does not describe a runnable service."""

    @classmethod
    def missing(cls, env_var: str) -> ConfigError:
        """Return an error for a required variable that is unset or blank."""
        return cls(f"{env_var} environment variable is required")

    @classmethod
    def invalid_port(cls, raw: str) -> ConfigError:
        """Return an error for a port outside ``1..65535``."""
        return cls(
            f"CROSSBOW_PORT must be an integer in {_MIN_PORT}-{_MAX_PORT}, got: {raw!r}"
        )

    @classmethod
    def not_positive(cls, env_var: str, raw: str) -> ConfigError:
        """Return an error for a non-positive integer setting."""
        return cls(f"{env_var} must be a positive integer, got: {raw!r}")


def _required(env_var: str) -> str:
    value = os.environ.get(env_var, "").strip()
    if not value:
        raise ConfigError.missing(env_var)
    return value


def parse_port(raw: str) -> int:
    """Parse a TCP port, raising :class:`ConfigError` when out of range."""
    try:
        port = int(raw)
    except ValueError as exc:
        raise ConfigError.invalid_port(raw) from exc
    if not (_MIN_PORT <= port <= _MAX_PORT):
        raise ConfigError.invalid_port(raw)
    return port


def listen_address_from_env() -> tuple[str, int]:
    """Return the bind host and port from ``CROSSBOW_HOST`` and ``CROSSBOW_PORT``.

    Raises
    ------
    ConfigError
        If the port is not an integer in ``1..65535``.

    """
    host = os.environ.get("CROSSBOW_HOST", "").strip() or DEFAULT_HOST
    raw_port = os.environ.get("CROSSBOW_PORT", "").strip() or str(DEFAULT_PORT)
    return host, parse_port(raw_port)


def database_configured() -> bool:
    """Return whether ``CROSSBOW_DATABASE_URL`` is set to a non-blank value."""
    return bool(os.environ.get("CROSSBOW_DATABASE_URL", "").strip())


def _positive_int(env_var: str, default: int) -> int:
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError.not_positive(env_var, raw) from exc
    if value < 1:
        raise ConfigError.not_positive(env_var, raw)
    return value


@dc.dataclass(frozen=True, slots=True)
class ServiceConfig:
    """Settings for the webhook ingestion service.

    Attributes
    ----------
    database_url
        SQLAlchemy async URL, e.g. ``postgresql+asyncpg://...``.
    github_webhook_secret
        Shared secret used to verify ``X-Hub-Signature-256`` headers.
    host
        Bind address for the HTTP listener.
    port
        Listen port.
    max_connections
        Size of the database connection pool. Background projections share
        this pool with request handling.
    log_level
        Raw log level; normalised by :func:`crossbow.logging.configure_logging`.

    """

    database_url: str
    github_webhook_secret: str
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    max_connections: int = 5
    log_level: str = "INFO"

    @property
    def server_address(self) -> str:
        """Return ``host:port`` for log output."""
        return f"{self.host}:{self.port}"

    @classmethod
    def from_env(cls) -> ServiceConfig:
        """Build the configuration from the process environment.

        Raises
        ------
        ConfigError
            If a required variable is missing or a numeric value is invalid.

        """
        host, port = listen_address_from_env()
        return cls(
            database_url=_required("CROSSBOW_DATABASE_URL"),
            github_webhook_secret=_required("CROSSBOW_GITHUB_WEBHOOK_SECRET"),
            host=host,
            port=port,
            max_connections=_positive_int("CROSSBOW_MAX_CONNECTIONS", 5),
            log_level=os.environ.get("CROSSBOW_LOG_LEVEL", "INFO"),
        )
