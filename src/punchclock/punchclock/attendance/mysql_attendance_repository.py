from __future__ import annotations

from dataclasses import replace
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import AttendanceStatus, IntervalKind
from ..core.exceptions import DuplicateRecord, StaleRecord
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from ..evidence.model import EvidenceEntry
from .model import AttendanceRecord, EmployeeKey, Interval
from .repository import AttendanceRepository

_RECORD_COLUMNS = """
    record_id, employee_name, email, work_date, check_in, check_out, status,
    total_break_minutes, total_bio_break_minutes, total_worked_minutes, version
"""


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_open_record(self, employee: EmployeeKey, work_date: str) -> Optional[AttendanceRecord]:
        record = self.get_record(employee, work_date)
        if record is None or not record.is_open:
            return None
        return record

    def get_record(self, employee: EmployeeKey, work_date: str) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                WHERE employee_name=%s AND email=%s AND work_date=%s
                """,
                (employee.name, employee.email, work_date),
            )
            r = fetchone(cur)
            if not r:
                return None
            return self._load_children(cur, [r])[0]

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        employee_name, email, work_date, check_in, check_out, status,
                        total_break_minutes, total_bio_break_minutes, total_worked_minutes, version
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,1)
                    """,
                    (
                        record.employee.name,
                        record.employee.email,
                        record.work_date,
                        record.check_in,
                        record.check_out,
                        record.status.value,
                        record.total_break_minutes,
                        record.total_bio_break_minutes,
                        record.total_worked_minutes,
                    ),
                )
                record_id = int(cur.lastrowid)
                self._insert_intervals(cur, record_id, record)
        except mysql.connector.IntegrityError as e:
            if is_duplicate_key(e):
                raise DuplicateRecord(
                    f"A record already exists for {record.employee.email} on {record.work_date}"
                ) from e
            raise

        return replace(record, record_id=record_id, version=1)

    def save(self, record: AttendanceRecord) -> AttendanceRecord:
        if record.record_id is None:
            raise ValueError("save() needs a persisted record; use create() first")

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_in=%s, check_out=%s, status=%s,
                    total_break_minutes=%s, total_bio_break_minutes=%s, total_worked_minutes=%s,
                    version=version+1
                WHERE record_id=%s AND version=%s
                """,
                (
                    record.check_in,
                    record.check_out,
                    record.status.value,
                    record.total_break_minutes,
                    record.total_bio_break_minutes,
                    record.total_worked_minutes,
                    record.record_id,
                    record.version,
                ),
            )
            if cur.rowcount == 0:
                raise StaleRecord(f"Record {record.record_id} changed since version {record.version}")

            cur.execute("DELETE FROM attendance_intervals WHERE record_id=%s", (record.record_id,))
            self._insert_intervals(cur, record.record_id, record)

        return replace(record, version=record.version + 1)

    def delete(self, record_id: int) -> bool:
        # intervals and evidence go with it through ON DELETE CASCADE
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_records WHERE record_id=%s", (int(record_id),))
            return cur.rowcount > 0

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
        where, params = self._filters(start_date=start_date, end_date=end_date, email=email, name=name)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                WHERE {where}
                ORDER BY work_date DESC, check_in DESC, record_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params) + (int(limit), int(offset)),
            )
            rows = fetchall(cur)
            if not rows:
                return []
            return self._load_children(cur, rows)

    def count_records(
        self,
        *,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> int:
        where, params = self._filters(start_date=start_date, end_date=end_date, email=email, name=name)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM attendance_records WHERE {where}", tuple(params))
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    @staticmethod
    def _filters(*, start_date, end_date, email, name) -> tuple[str, list[object]]:
        clauses = ["1=1"]
        params: list[object] = []

        if start_date:
            clauses.append("work_date >= %s")
            params.append(start_date)
        if end_date:
            clauses.append("work_date <= %s")
            params.append(end_date)
        if email:
            clauses.append("email LIKE %s")
            params.append(f"%{email.strip()}%")
        if name:
            clauses.append("employee_name LIKE %s")
            params.append(f"%{name.strip()}%")

        return " AND ".join(clauses), params

    @staticmethod
    def _insert_intervals(cur, record_id: int, record: AttendanceRecord) -> None:
        rows = [
            (record_id, kind.value, seq, i.start, i.end, i.minutes)
            for kind in IntervalKind
            for seq, i in enumerate(record.sessions(kind))
        ]
        if rows:
            cur.executemany(
                """
                INSERT INTO attendance_intervals(record_id, kind, seq, start_at, end_at, minutes)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                rows,
            )

    @staticmethod
    def _load_children(cur, rows: list[dict]) -> list[AttendanceRecord]:
        ids = [int(r["record_id"]) for r in rows]
        marks = ",".join(["%s"] * len(ids))

        cur.execute(
            f"""
            SELECT record_id, kind, start_at, end_at, minutes
            FROM attendance_intervals
            WHERE record_id IN ({marks})
            ORDER BY record_id, kind, seq
            """,
            tuple(ids),
        )
        intervals: dict[tuple[int, str], list[Interval]] = {}
        for i in fetchall(cur):
            intervals.setdefault((int(i["record_id"]), i["kind"]), []).append(
                Interval(start=i["start_at"], end=i.get("end_at"), minutes=int(i.get("minutes") or 0))
            )

        cur.execute(
            f"""
            SELECT evidence_id, record_id, action, url, taken_at
            FROM attendance_evidence
            WHERE record_id IN ({marks})
            ORDER BY evidence_id
            """,
            tuple(ids),
        )
        evidence: dict[int, list[EvidenceEntry]] = {}
        for e in fetchall(cur):
            evidence.setdefault(int(e["record_id"]), []).append(
                EvidenceEntry(
                    evidence_id=int(e["evidence_id"]),
                    action=e["action"],
                    url=e["url"],
                    taken_at=e["taken_at"],
                )
            )

        out = []
        for r in rows:
            rid = int(r["record_id"])
            out.append(
                AttendanceRecord(
                    record_id=rid,
                    employee=EmployeeKey(name=r["employee_name"], email=r["email"]),
                    work_date=r["work_date"],
                    check_in=r.get("check_in"),
                    check_out=r.get("check_out"),
                    status=AttendanceStatus(r["status"]),
                    break_sessions=tuple(intervals.get((rid, IntervalKind.BREAK.value), [])),
                    bio_break_sessions=tuple(intervals.get((rid, IntervalKind.BIO.value), [])),
                    total_break_minutes=int(r.get("total_break_minutes") or 0),
                    total_bio_break_minutes=int(r.get("total_bio_break_minutes") or 0),
                    total_worked_minutes=int(r.get("total_worked_minutes") or 0),
                    evidence=tuple(evidence.get(rid, [])),
                    version=int(r["version"]),
                )
            )
        return out
