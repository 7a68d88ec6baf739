"""Build the configured :class:`DatabaseAdapter`."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from ..config import Settings
from .adapters import SqlAlchemyAdapter

SUPPORTED_BACKENDS = ("sqlite", "postgresql")


def validate_database_url(raw_url: str) -> URL:
    """Parse ``raw_url`` and ensure it targets a supported backend."""

    try:
        url = make_url(raw_url)
    except ArgumentError as exc:
        raise ValueError(f"Invalid database URL: {raw_url!r}") from exc
    backend = url.get_backend_name()
    if backend not in SUPPORTED_BACKENDS:
        raise ValueError(
            f"Unsupported database backend '{backend}' (expected one of {', '.join(SUPPORTED_BACKENDS)})"
        )
    if backend == "postgresql" and not url.database:
        raise ValueError("PostgreSQL URLs must name a database")
    return url


def _ensure_sqlite_directory(url: URL) -> None:
    database = url.database
    if not database or database == ":memory:" or database.startswith("file:"):
        return
    Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def create_adapter(settings: Settings) -> SqlAlchemyAdapter:
    """Return an unconnected adapter for ``settings.database_url``."""

    url = validate_database_url(settings.database_url)
    if url.get_backend_name() == "sqlite":
        _ensure_sqlite_directory(url)
    return SqlAlchemyAdapter(
        url.render_as_string(hide_password=False),
        echo=settings.database_echo,
    )


__all__ = ["SUPPORTED_BACKENDS", "create_adapter", "validate_database_url"]
