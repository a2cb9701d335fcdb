from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" or "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def local_date(at: datetime, tz_name: str | None) -> date:
    """
    Calendar date of a UTC-naive instant as seen in the given IANA timezone.

    Unknown or empty timezone names fall back to UTC.
    """
    aware = at.replace(tzinfo=timezone.utc) if at.tzinfo is None else at
    try:
        zone = ZoneInfo(tz_name) if tz_name else timezone.utc
    except (ZoneInfoNotFoundError, ValueError):
        zone = timezone.utc
    return aware.astimezone(zone).date()


def parse_range_bound(value: Optional[str], *, end: bool = False) -> Optional[datetime]:
    """
    Parse a start/end query parameter for date-range filters.

    End bounds are inclusive at the precision given and are returned as an
    exclusive upper limit, so callers compare with "<":
    - "2025-01-31" -> next midnight
    - "2025-01-31T10:00" -> next minute
    - "2025-01-31T10:00:00Z" -> next second
    - fractional seconds -> next microsecond
    Start bounds are returned as-is (UTC-naive).
    """
    if value is None or not value.strip():
        return None
    dt = parse_iso_datetime(value)
    if not end:
        return dt
    raw = value.strip()
    if len(raw) == 10:
        return dt + timedelta(days=1)
    clock = re.split(r"[Z+-]", raw[11:], maxsplit=1)[0]
    if "." in clock:
        return dt + timedelta(microseconds=1)
    if clock.count(":") >= 2:
        return dt + timedelta(seconds=1)
    return dt + timedelta(minutes=1)
