from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord, EmployeeKey


class AttendanceRepository(Protocol):
    """Storage for daily attendance records.

    Records are stored as whole documents keyed by (employee, work_date). The
    store holds at most one row per key, which is what makes concurrent
    check-ins safe; updates are guarded by a compare-and-swap on ``version``.
    """

    def find_open_record(self, employee: EmployeeKey, work_date: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_record(self, employee: EmployeeKey, work_date: str) -> Optional[AttendanceRecord]:
        """Record for the key in any status, evidence included."""

        raise NotImplementedError

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        """Insert a new record and return it with ``record_id`` and ``version`` set.

        Raises DuplicateRecord when a row already exists for the same key.
        """

        raise NotImplementedError

    def save(self, record: AttendanceRecord) -> AttendanceRecord:
        """Replace the stored document if its version still matches ``record.version``.

        Returns the record with the bumped version. Raises StaleRecord when the
        stored version moved on.
        """

        raise NotImplementedError

    def delete(self, record_id: int) -> bool:
        """Drop the record with its intervals and evidence. False when no such id."""

        raise NotImplementedError

    def list_records(
        self,
        *,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        email: Optional[str] = None,
        name: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def count_records(
        self,
        *,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> int:
        raise NotImplementedError
