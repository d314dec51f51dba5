"""
UTC and time-zone helpers (stdlib-only).

Change stamps (``created_at``/``updated_at``/``deleted_at``) are produced
by a *clock*: a zero-argument callable bound to the configured zone. The
zone is an explicit value handed to whoever needs it, never a module
global.

STDLIB ONLY - NO PYDANTIC.
"""

from collections.abc import Callable
from datetime import UTC, datetime, tzinfo
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def to_timezone(value: datetime, zone: tzinfo | str) -> datetime:
    """Convert *value* to *zone*.

    Naive datetimes are interpreted as UTC.

    >>> to_timezone(datetime(2024, 1, 1, 12), "America/Sao_Paulo").hour
    9
    """
    if isinstance(zone, str):
        zone = ZoneInfo(zone)
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(zone)


def make_clock(zone: tzinfo | str = "UTC") -> Clock:
    """Return a clock producing the current time in *zone*."""
    if isinstance(zone, str):
        zone = ZoneInfo(zone)

    def _now() -> datetime:
        return to_timezone(utc_now(), zone)

    return _now
