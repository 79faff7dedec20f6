"""Pure duration math for attendance records.

Everything here works from stored timestamps only, so totals can always be
rebuilt from the interval lists that produced them.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional

from .model import AttendanceRecord, Interval


def interval_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between two timestamps, rounded half-up, never below 0."""
    seconds = (end - start).total_seconds()
    if seconds <= 0:
        return 0
    return int((seconds + 30) // 60)


def close_interval(interval: Interval, end: datetime) -> Interval:
    return Interval(start=interval.start, end=end, minutes=interval_minutes(interval.start, end))


def sum_interval_minutes(intervals: Iterable[Interval]) -> int:
    """Sum of closed intervals. Each one is floored at 0 on its own; open ones count 0."""
    return sum(interval_minutes(i.start, i.end) for i in intervals if i.end is not None)


def worked_minutes(
    check_in: Optional[datetime],
    check_out: Optional[datetime],
    break_minutes: int,
    bio_break_minutes: int,
    *,
    now: datetime,
) -> int:
    """(check_out or now) - check_in - breaks, floored at 0."""
    if check_in is None:
        return 0
    span = interval_minutes(check_in, check_out or now)
    return max(span - int(break_minutes) - int(bio_break_minutes), 0)


def recompute_totals(record: AttendanceRecord, *, now: datetime) -> AttendanceRecord:
    total_break = sum_interval_minutes(record.break_sessions)
    total_bio = sum_interval_minutes(record.bio_break_sessions)
    return replace(
        record,
        total_break_minutes=total_break,
        total_bio_break_minutes=total_bio,
        total_worked_minutes=worked_minutes(record.check_in, record.check_out, total_break, total_bio, now=now),
    )
