"""Datetime utilities."""

from datetime import date, datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def epoch_millis(value: datetime) -> int:
    """Milliseconds since the epoch for ``value``."""
    return int(value.timestamp() * 1000)


def parse_date(value: Any) -> Optional[date]:
    """Parse a date from a date, datetime, or ISO-like string.

    Accepts ``YYYY-MM-DD``, ISO timestamps (``Z`` suffix allowed) and the
    ``YYYY-MM-DD HH:MM:SS.fff`` form query engines return for timestamps.
    Returns None for empty or unparsable values.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None
