"""RFC 3339 timestamps as they appear in memory and index files."""

from __future__ import annotations

import re
from datetime import datetime, timezone

# date "T" time [fraction] offset; the offset is mandatory
RFC3339_PATTERN = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)


def is_absolute(value: object) -> bool:
    """True for timezone-aware datetimes."""
    return isinstance(value, datetime) and value.utcoffset() is not None


def format_timestamp(value: datetime) -> str:
    """Render an aware datetime in UTC with a ``Z`` suffix."""
    utc = value.astimezone(timezone.utc)
    timespec = "milliseconds" if utc.microsecond % 1000 == 0 else "microseconds"
    return utc.isoformat(timespec=timespec).replace("+00:00", "Z")


def parse_timestamp(value: object) -> datetime | None:
    """Parse an RFC 3339 string (or aware datetime); ``None`` if invalid.

    Fractions of any length are accepted and cut to microseconds.
    """
    if isinstance(value, datetime):
        return value if is_absolute(value) else None
    if not isinstance(value, str):
        return None
    match = RFC3339_PATTERN.match(value.strip())
    if match is None:
        return None
    date, time, fraction, offset = match.groups()
    if offset in ("Z", "z"):
        offset = "+00:00"
    micros = f".{fraction[:6].ljust(6, '0')}" if fraction else ""
    try:
        return datetime.fromisoformat(f"{date}T{time}{micros}{offset}")
    except ValueError:
        return None
