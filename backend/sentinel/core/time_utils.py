# backend/sentinel/core/time_utils.py
import re
from datetime import datetime, timezone
from typing import Optional

# Fractional seconds of any length; fromisoformat on 3.10 only takes 3 or 6 digits
_FRACTION = re.compile(r"(T\d{2}:\d{2}:\d{2})\.(\d+)", re.IGNORECASE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a datetime to aware UTC.
    Naive values are assumed to already be UTC (SQLite drops tzinfo).
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_microseconds(match: re.Match) -> str:
    digits = match.group(2)[:6].ljust(6, "0")
    return f"{match.group(1)}.{digits}"


def parse_rfc3339(value: str) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp; fractions beyond microseconds are truncated."""
    if not isinstance(value, str) or not value:
        return None
    if value.endswith("Z") or value.endswith("z"):
        value = value[:-1] + "+00:00"
    value = _FRACTION.sub(_to_microseconds, value, count=1)
    try:
        return as_utc(datetime.fromisoformat(value))
    except ValueError:
        return None


def format_rfc3339(value: datetime) -> str:
    return as_utc(value).isoformat().replace("+00:00", "Z")
