from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..common.validators import require_email, require_non_empty
from ..core.enums import AttendanceStatus, IntervalKind
from ..evidence.model import EvidenceEntry


@dataclass(frozen=True)
class EmployeeKey:
    """Identity of whoever punches: declared name plus email.

    Email alone is not unique (several people may share a team mailbox), so
    both parts take part in every lookup.
    """

    name: str
    email: str

    @classmethod
    def of(cls, name: str, email: str) -> "EmployeeKey":
        return cls(name=require_non_empty(name, "employeeName"), email=require_email(email))


@dataclass(frozen=True)
class Interval:
    """One break or bio-break session. ``minutes`` stays 0 while open."""

    start: datetime
    end: Optional[datetime] = None
    minutes: int = 0

    @property
    def is_open(self) -> bool:
        return self.end is None


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one employee's attendance for one calendar day.

    Instances are never mutated; every transition produces a new value that the
    repository stores wholesale.
    """

    employee: EmployeeKey
    work_date: str
    status: AttendanceStatus
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    break_sessions: tuple[Interval, ...] = ()
    bio_break_sessions: tuple[Interval, ...] = ()
    total_break_minutes: int = 0
    total_bio_break_minutes: int = 0
    total_worked_minutes: int = 0
    evidence: tuple[EvidenceEntry, ...] = ()
    record_id: Optional[int] = None
    version: int = 0

    @property
    def is_open(self) -> bool:
        return self.status.is_open

    def sessions(self, kind: IntervalKind) -> tuple[Interval, ...]:
        return self.break_sessions if kind is IntervalKind.BREAK else self.bio_break_sessions

    def open_interval(self) -> Optional[tuple[IntervalKind, Interval]]:
        for kind in IntervalKind:
            seq = self.sessions(kind)
            if seq and seq[-1].is_open:
                return kind, seq[-1]
        return None

    def to_dict(self) -> dict:
        def _ts(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        def _intervals(seq: tuple[Interval, ...]) -> list[dict]:
            return [{"start": _ts(i.start), "end": _ts(i.end), "minutes": i.minutes} for i in seq]

        return {
            "id": self.record_id,
            "employeeName": self.employee.name,
            "email": self.employee.email,
            "date": self.work_date,
            "checkIn": _ts(self.check_in),
            "checkOut": _ts(self.check_out),
            "breaks": _intervals(self.break_sessions),
            "bioBreaks": _intervals(self.bio_break_sessions),
            "totalBreak": self.total_break_minutes,
            "totalBioBreak": self.total_bio_break_minutes,
            "totalWorked": self.total_worked_minutes,
            "status": self.status.value,
            "selfies": [e.to_dict() for e in self.evidence],
        }


@dataclass(frozen=True)
class RecordPage:
    """One page of the records listing."""

    records: list[AttendanceRecord] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 50

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit
