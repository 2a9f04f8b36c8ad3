"""Engine and connection helpers for the alerts service."""

from __future__ import annotations

from functools import lru_cache
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine

from .config import DatabaseSettings, get_database_settings
from .models import metadata


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Return the process-wide engine built from :func:`get_database_settings`."""

    settings = get_database_settings()
    return create_engine(settings.url, **settings.engine_options())


def initialise_schema(engine: Engine) -> None:
    """Create any missing tables."""

    metadata.create_all(engine)


def get_connection() -> Iterator[Connection]:
    """FastAPI dependency yielding a connection inside a transaction."""

    with get_engine().begin() as conn:
        yield conn


__all__ = [
    "DatabaseSettings",
    "get_database_settings",
    "get_engine",
    "initialise_schema",
    "get_connection",
    "metadata",
]
