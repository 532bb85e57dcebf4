"""Construction options for identity database contexts.

Options are passed explicitly to a context or factory; nothing is read
from the environment here. See ``passage_config`` for settings-driven
construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from passage_identity.exceptions import ConfigurationError


@dataclass(frozen=True)
class ConnectionOptions:
    """How to reach the database."""

    url: Optional[str]
    echo: bool = False
    pool_pre_ping: bool = True
    connect_args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DbContextOptions:
    """Options a database context is constructed from."""

    connection_options: Optional[ConnectionOptions]
    expire_on_commit: bool = False

    @classmethod
    def from_url(cls, url: Optional[str], **kwargs: Any) -> DbContextOptions:
        """Build options for a plain connection URL.

        Keyword arguments are passed on to ``ConnectionOptions``.
        """
        return cls(connection_options=ConnectionOptions(url=url, **kwargs))


def require_connection_options(
    options: Optional[DbContextOptions],
) -> ConnectionOptions:
    """Return the connection options, or raise ``ConfigurationError``."""
    if options is None:
        msg = "Database context options are required"
        raise ConfigurationError(msg)

    if options.connection_options is None:
        msg = "Database context options have no connection options"
        raise ConfigurationError(msg)

    return options.connection_options


def validate_options(options: Optional[DbContextOptions]) -> URL:
    """Validate options and return the parsed connection URL.

    Raises
    ------
    ConfigurationError
        If options or connection information are missing, the URL cannot be
        parsed, the backend is unknown, or its driver is not an asyncio driver
    """
    connection = require_connection_options(options)

    if connection.url is None or not connection.url.strip():
        msg = "No database connection URL configured"
        raise ConfigurationError(msg)

    try:
        url = make_url(connection.url.strip())
        dialect_cls = url.get_dialect()
    except ArgumentError as e:
        msg = f"Invalid database connection URL: {e}"
        raise ConfigurationError(msg) from e

    if not getattr(dialect_cls, "is_async", False):
        msg = (
            f"Database driver '{url.drivername}' is not an asyncio driver "
            "(use e.g. postgresql+asyncpg or sqlite+aiosqlite)"
        )
        raise ConfigurationError(msg)

    return url


def create_engine_from_options(options: DbContextOptions) -> AsyncEngine:
    """Create an async engine for validated options."""
    url = validate_options(options)
    connection = require_connection_options(options)
    return create_async_engine(
        url,
        echo=connection.echo,
        pool_pre_ping=connection.pool_pre_ping,
        connect_args=dict(connection.connect_args),
    )


def describe_url(url: URL) -> str:
    """Render a URL for log output without its password."""
    return url.render_as_string(hide_password=True)
