from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from ...core.enums import AttendanceStatus, PunchAction
from ..model import AttendanceRecord, EmployeeKey
from .base import PunchTransition
from .break_strategy import EndBreakTransition


class CheckOutTransition(PunchTransition):
    """Last punch of the day.

    An interval still open at checkout is closed at the checkout instant rather
    than blocking the punch.
    """

    action = PunchAction.CHECK_OUT
    allowed_from = frozenset(
        {
            AttendanceStatus.CHECKED_IN,
            AttendanceStatus.RETURNED,
            AttendanceStatus.ON_BREAK,
            AttendanceStatus.ON_BIO_BREAK,
        }
    )
    target = AttendanceStatus.CHECKED_OUT

    def rejection_message(self, current: AttendanceStatus) -> str:
        return "Already checked out"

    def _mutate(self, record, *, employee: EmployeeKey, work_date: str, now: datetime) -> AttendanceRecord:
        opened = record.open_interval()
        if opened is not None:
            kind, _ = opened
            record = EndBreakTransition(kind)._mutate(record, employee=employee, work_date=work_date, now=now)
        return replace(record, status=self.target, check_out=now)
