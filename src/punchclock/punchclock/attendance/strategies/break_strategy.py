from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from ...core.enums import AttendanceStatus, IntervalKind, PunchAction
from ..durations import close_interval
from ..model import AttendanceRecord, EmployeeKey, Interval
from .base import PunchTransition

_SESSION_FIELD = {
    IntervalKind.BREAK: "break_sessions",
    IntervalKind.BIO: "bio_break_sessions",
}


def _with_sessions(record: AttendanceRecord, kind: IntervalKind, sessions: tuple[Interval, ...]) -> AttendanceRecord:
    return replace(record, **{_SESSION_FIELD[kind]: sessions})


class StartBreakTransition(PunchTransition):
    """Open a new interval on one break track."""

    allowed_from = frozenset({AttendanceStatus.CHECKED_IN, AttendanceStatus.RETURNED})

    def __init__(self, kind: IntervalKind):
        self.kind = kind
        self.action = PunchAction.BREAK_START if kind is IntervalKind.BREAK else PunchAction.BIO_START
        self.target = AttendanceStatus.ON_BREAK if kind is IntervalKind.BREAK else AttendanceStatus.ON_BIO_BREAK

    def rejection_message(self, current: AttendanceStatus) -> str:
        if current is self.target:
            return "Already on a break" if self.kind is IntervalKind.BREAK else "Already on a bio break"
        if current is AttendanceStatus.ON_BREAK:
            return "Please end your break first"
        if current is AttendanceStatus.ON_BIO_BREAK:
            return "Please end your bio break first"
        return super().rejection_message(current)

    def _mutate(self, record, *, employee: EmployeeKey, work_date: str, now: datetime) -> AttendanceRecord:
        sessions = record.sessions(self.kind) + (Interval(start=now),)
        return replace(_with_sessions(record, self.kind, sessions), status=self.target)


class EndBreakTransition(PunchTransition):
    """Close the open interval on one break track and return to work."""

    target = AttendanceStatus.RETURNED

    def __init__(self, kind: IntervalKind):
        self.kind = kind
        self.action = PunchAction.BREAK_END if kind is IntervalKind.BREAK else PunchAction.BIO_END
        self.allowed_from = frozenset(
            {AttendanceStatus.ON_BREAK if kind is IntervalKind.BREAK else AttendanceStatus.ON_BIO_BREAK}
        )

    def rejection_message(self, current: AttendanceStatus) -> str:
        return "Not currently on a break" if self.kind is IntervalKind.BREAK else "Not currently on a bio break"

    def _mutate(self, record, *, employee: EmployeeKey, work_date: str, now: datetime) -> AttendanceRecord:
        sessions = record.sessions(self.kind)
        closed = sessions[:-1] + (close_interval(sessions[-1], now),)
        return replace(_with_sessions(record, self.kind, closed), status=self.target)
