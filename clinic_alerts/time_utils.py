"""Utilities for working with timestamps in UTC."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Union

Scalar = Union[int, float, str, datetime]


def utc_now() -> datetime:
    """Return the current time as a timezone-aware ``datetime`` in UTC."""

    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Normalise ``dt`` to a timezone-aware UTC ``datetime``."""

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: Optional[Scalar]) -> Optional[datetime]:
    """Coerce ISO 8601 text, epoch seconds or a ``datetime`` to UTC.

    Returns ``None`` for empty or unparseable input.
    """

    if value in (None, "", b""):
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def isoformat_z(dt: Optional[datetime]) -> Optional[str]:
    """Return ISO 8601 text for ``dt`` using a trailing ``Z`` for UTC."""

    if dt is None:
        return None
    text = ensure_utc(dt).isoformat()
    if text.endswith("+00:00"):
        return text[:-6] + "Z"
    return text


def format_time_ago(value: Optional[Scalar], now: Optional[datetime] = None) -> str:
    """Render the age of ``value`` as ``"<n> min ago"``, hours or days."""

    then = parse_timestamp(value)
    if then is None:
        return ""
    current = ensure_utc(now) if now is not None else utc_now()
    minutes = int((current - then).total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24
    if minutes < 60:
        return f"{minutes} min ago"
    if hours < 24:
        return f"{hours} hours ago"
    return f"{days} days ago"


__all__ = ["utc_now", "ensure_utc", "parse_timestamp", "isoformat_z", "format_time_ago"]
