from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

import pytest

from src.punchclock.punchclock.attendance.model import AttendanceRecord, EmployeeKey
from src.punchclock.punchclock.core.exceptions import DuplicateRecord, StaleRecord
from src.punchclock.punchclock.evidence.model import EvidenceEntry


class FixedClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def at(self, hh: int, mm: int, ss: int = 0) -> "FixedClock":
        self.now = self.now.replace(hour=hh, minute=mm, second=ss)
        return self

    def advance(self, **kwargs) -> "FixedClock":
        self.now = self.now + timedelta(**kwargs)
        return self


class InMemoryEvidence:
    def __init__(self):
        self._lock = threading.Lock()
        self._rows: list[tuple[int, EvidenceEntry]] = []

    def append(self, record_id: int, entry: EvidenceEntry) -> EvidenceEntry:
        with self._lock:
            stored = replace(entry, evidence_id=len(self._rows) + 1)
            self._rows.append((record_id, stored))
            return stored

    def list_for_record(self, record_id: int):
        with self._lock:
            return [e for rid, e in self._rows if rid == record_id]


class InMemoryAttendance:
    """Thread-safe store with the same uniqueness and version rules as the MySQL one."""

    def __init__(self, evidence: Optional[InMemoryEvidence] = None):
        self._lock = threading.Lock()
        self._by_key: dict[tuple[str, str, str], AttendanceRecord] = {}
        self._id = 0
        self.evidence = evidence or InMemoryEvidence()
        self.creates = 0
        self.saves = 0

    @staticmethod
    def _key(employee: EmployeeKey, work_date: str):
        return employee.name, employee.email, work_date

    def _with_evidence(self, record: AttendanceRecord) -> AttendanceRecord:
        return replace(record, evidence=tuple(self.evidence.list_for_record(record.record_id)))

    def get_record(self, employee: EmployeeKey, work_date: str) -> Optional[AttendanceRecord]:
        with self._lock:
            rec = self._by_key.get(self._key(employee, work_date))
        return self._with_evidence(rec) if rec else None

    def find_open_record(self, employee: EmployeeKey, work_date: str) -> Optional[AttendanceRecord]:
        rec = self.get_record(employee, work_date)
        return rec if rec and rec.is_open else None

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        with self._lock:
            key = self._key(record.employee, record.work_date)
            if key in self._by_key:
                raise DuplicateRecord("duplicate")
            self._id += 1
            self.creates += 1
            stored = replace(record, record_id=self._id, version=1, evidence=())
            self._by_key[key] = stored
            return stored

    def save(self, record: AttendanceRecord) -> AttendanceRecord:
        with self._lock:
            key = self._key(record.employee, record.work_date)
            current = self._by_key.get(key)
            if current is None or current.version != record.version:
                raise StaleRecord("stale")
            self.saves += 1
            stored = replace(record, version=record.version + 1, evidence=())
            self._by_key[key] = stored
            return stored

    def delete(self, record_id: int) -> bool:
        with self._lock:
            for key, rec in list(self._by_key.items()):
                if rec.record_id == record_id:
                    del self._by_key[key]
                    return True
            return False

    def _filtered(self, *, start_date=None, end_date=None, email=None, name=None):
        with self._lock:
            items = list(self._by_key.values())
        if start_date:
            items = [r for r in items if r.work_date >= start_date]
        if end_date:
            items = [r for r in items if r.work_date <= end_date]
        if email:
            items = [r for r in items if email.lower() in r.employee.email]
        if name:
            items = [r for r in items if name.lower() in r.employee.name.lower()]
        items.sort(key=lambda r: (r.work_date, r.check_in, r.record_id), reverse=True)
        return items

    def list_records(self, *, start_date=None, end_date=None, email=None, name=None, limit=50, offset=0):
        items = self._filtered(start_date=start_date, end_date=end_date, email=email, name=name)
        return [self._with_evidence(r) for r in items[offset : offset + limit]]

    def count_records(self, *, start_date=None, end_date=None, email=None, name=None) -> int:
        return len(self._filtered(start_date=start_date, end_date=end_date, email=email, name=name))


class RacingAttendance(InMemoryAttendance):
    """Holds each of two threads at its first read until both have read.

    Both callers then decide from the same snapshot, which is the window a
    real concurrent punch hits.
    """

    def __init__(self):
        super().__init__()
        self._barrier = threading.Barrier(2)
        self._seen: set[int] = set()
        self._seen_lock = threading.Lock()
        self.armed = True

    def _hold_first_read(self) -> None:
        if not self.armed:
            return
        ident = threading.get_ident()
        with self._seen_lock:
            first = ident not in self._seen
            self._seen.add(ident)
        if first:
            self._barrier.wait(timeout=5)

    def get_record(self, employee, work_date):
        rec = super().get_record(employee, work_date)
        self._hold_first_read()
        return rec

    def find_open_record(self, employee, work_date):
        rec = InMemoryAttendance.get_record(self, employee, work_date)
        self._hold_first_read()
        return rec if rec and rec.is_open else None


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 2, 2, 9, 0, 0)


@pytest.fixture
def clock(fixed_now) -> FixedClock:
    return FixedClock(fixed_now)


@pytest.fixture
def evidence_log() -> InMemoryEvidence:
    return InMemoryEvidence()


@pytest.fixture
def attendance_repo(evidence_log) -> InMemoryAttendance:
    return InMemoryAttendance(evidence_log)


@pytest.fixture
def racing_repo() -> RacingAttendance:
    return RacingAttendance()


@pytest.fixture
def employee() -> dict:
    return {"employee_name": "Maria Santos", "email": "team@acme.io", "work_date": "2026-02-02"}
