from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import FrozenSet, Optional

from ...core.enums import AttendanceStatus, PunchAction
from ...core.exceptions import InvalidTransition
from ..durations import recompute_totals
from ..model import AttendanceRecord, EmployeeKey


class PunchTransition(ABC):
    """Strategy Pattern: one legal move of the daily attendance state machine."""

    action: PunchAction
    allowed_from: FrozenSet[AttendanceStatus]
    target: AttendanceStatus

    def apply(
        self,
        record: Optional[AttendanceRecord],
        *,
        employee: EmployeeKey,
        work_date: str,
        now: datetime,
    ) -> AttendanceRecord:
        self.check_allowed(record)
        nxt = self._mutate(record, employee=employee, work_date=work_date, now=now)
        return recompute_totals(nxt, now=now)

    def check_allowed(self, record: Optional[AttendanceRecord]) -> None:
        if record is None:
            raise InvalidTransition("No active shift found. Please check in first.")
        if record.status not in self.allowed_from:
            raise InvalidTransition(self.rejection_message(record.status))

    def rejection_message(self, current: AttendanceStatus) -> str:
        return f"Cannot {self.action.value} while {current.value}"

    @abstractmethod
    def _mutate(
        self,
        record: Optional[AttendanceRecord],
        *,
        employee: EmployeeKey,
        work_date: str,
        now: datetime,
    ) -> AttendanceRecord:
        raise NotImplementedError
