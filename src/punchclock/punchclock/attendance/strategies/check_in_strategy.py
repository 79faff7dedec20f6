from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus, PunchAction
from ...core.exceptions import InvalidTransition
from ..model import AttendanceRecord, EmployeeKey
from .base import PunchTransition


class CheckInTransition(PunchTransition):
    """First punch of the day; only legal when no record exists yet."""

    action = PunchAction.CHECK_IN
    allowed_from = frozenset()
    target = AttendanceStatus.CHECKED_IN

    def check_allowed(self, record: Optional[AttendanceRecord]) -> None:
        if record is None:
            return
        if record.is_open:
            raise InvalidTransition("You have an active shift already. Please check out first.")
        raise InvalidTransition(f"Already checked out for {record.work_date}")

    def _mutate(self, record, *, employee: EmployeeKey, work_date: str, now: datetime) -> AttendanceRecord:
        return AttendanceRecord(employee=employee, work_date=work_date, status=self.target, check_in=now)
