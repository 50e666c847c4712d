"""Date/time helpers: UTC normalization and timezone-aware day ranges."""

from __future__ import annotations

import time
from datetime import date, datetime, time as dtime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def now_ms() -> int:
    """Milliseconds since the epoch; used as a stable insertion position."""
    return time.time_ns() // 1_000_000


def resolve_zone(tz_name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def local_day_bounds(tz_name: str | None, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Return ``[local midnight, next local midnight)`` for *now*, in UTC."""
    zone = resolve_zone(tz_name)
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    local_day = current.astimezone(zone).date()
    start = datetime.combine(local_day, dtime.min, tzinfo=zone)
    end = datetime.combine(local_day + timedelta(days=1), dtime.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def coerce_datetime(value: object, tz_name: str | None = None) -> datetime | None:
    """Coerce common date representations into an aware UTC ``datetime``.

    Bare dates (``date`` objects or ``YYYY-MM-DD`` strings) mean local midnight
    in *tz_name*; naive datetimes are read as local wall time in *tz_name*.
    ``None`` and blank strings give ``None``; anything else that is not a
    date raises ``ValueError``.
    """
    if value is None:
        return None

    zone = resolve_zone(tz_name)

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=zone)
        return value.astimezone(timezone.utc)

    if isinstance(value, date):
        return datetime.combine(value, dtime.min, tzinfo=zone).astimezone(timezone.utc)

    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if len(raw) == 10:
            return coerce_datetime(date.fromisoformat(raw), tz_name)
        return coerce_datetime(datetime.fromisoformat(raw.replace("Z", "+00:00")), tz_name)

    raise ValueError(f"Not a date: {value!r}")
