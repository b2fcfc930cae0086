from __future__ import annotations

from datetime import date, datetime

from ..core.constants import WEEKDAY_NAMES


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp as written by ``datetime.isoformat``."""
    return datetime.fromisoformat(value)


def weekday_name(value: date) -> str:
    """'Monday' .. 'Sunday' for a date or datetime."""
    return WEEKDAY_NAMES[value.weekday()]


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
