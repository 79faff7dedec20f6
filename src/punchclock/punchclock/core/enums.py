from __future__ import annotations

from enum import Enum

from .exceptions import ValidationError


class AttendanceStatus(str, Enum):
    """Current lifecycle state of a daily attendance record."""

    CHECKED_IN = "checked-in"
    ON_BREAK = "on-break"
    ON_BIO_BREAK = "on-bio-break"
    RETURNED = "returned"
    CHECKED_OUT = "checked-out"

    @property
    def is_open(self) -> bool:
        return self is not AttendanceStatus.CHECKED_OUT


class IntervalKind(str, Enum):
    """Which break track an interval belongs to."""

    BREAK = "break"
    BIO = "bio"


class PunchAction(str, Enum):
    """Employee-initiated attendance actions."""

    CHECK_IN = "check-in"
    BREAK_START = "break-start"
    BREAK_END = "break-end"
    BIO_START = "bio-start"
    BIO_END = "bio-end"
    CHECK_OUT = "check-out"

    @classmethod
    def parse(cls, value: str) -> "PunchAction":
        """Accept canonical names plus the names older clients still send."""

        key = value.strip().lower() if isinstance(value, str) else ""
        try:
            return cls(_ACTION_ALIASES.get(key, key))
        except ValueError:
            raise ValidationError(f"Unknown punch action: {value!r}") from None


_ACTION_ALIASES = {
    "break-in": "break-start",
    "break-out": "break-end",
    "bio-break-in": "bio-start",
    "bio-break-out": "bio-end",
}
