from __future__ import annotations

import re
from datetime import datetime

from ..core.exceptions import ValidationError

_DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date_key(value: str) -> str:
    """Validate the shape of a caller-supplied day key and return it stripped.

    Only the ``YYYY-MM-DD`` shape is checked; future or past days are accepted.
    """

    v = value.strip() if isinstance(value, str) else ""
    if not _DATE_KEY_RE.match(v):
        raise ValidationError("Invalid date format. Use YYYY-MM-DD")
    return v


def whole_seconds(value: datetime) -> datetime:
    """Drop sub-second precision; stored timestamps are DATETIME(0)."""
    return value.replace(microsecond=0)


def now_local() -> datetime:
    """Current local time at whole-second precision.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return whole_seconds(datetime.now())


def format_minutes(minutes: int) -> str:
    """Render a minute total as ``"2h 5m"`` (or ``"45m"`` under an hour)."""
    if not minutes:
        return "0m"
    h, m = divmod(int(minutes), 60)
    return f"{h}h {m}m" if h > 0 else f"{m}m"


def parse_client_timestamp(value) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError("clientTimestamp must be an ISO-8601 timestamp")
