# Overview: UTC timestamp helpers. Timestamps are stored naive and always mean UTC.

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Aware datetimes are converted to UTC; naive ones are already UTC."""
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a query-string timestamp for sale and session filters.

    - None / "" -> None
    - "YYYY-MM-DD" or "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC

    Raises ValueError on anything else.
    """
    if value is None or not value.strip():
        return None
    s = value.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return as_naive_utc(datetime.fromisoformat(s))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with a trailing 'Z', to the second."""
    if dt is None:
        return None
    dt = as_naive_utc(dt).replace(microsecond=0)
    return dt.isoformat() + "Z"
