from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..attendance.durations import interval_minutes, worked_minutes
from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import format_minutes, now_local, parse_date_key, whole_seconds
from ..core.constants import DATE_KEY_FORMAT, DEFAULT_REPORT_DAYS, MAX_RECORDS_PAGE_SIZE
from ..core.exceptions import ValidationError

REPORT_FIELDS = [
    "date",
    "employee_name",
    "email",
    "check_in",
    "check_out",
    "status",
    "breaks",
    "break_minutes",
    "bio_breaks",
    "bio_break_minutes",
    "worked_minutes",
    "worked",
]


@dataclass(frozen=True)
class ReportData:
    rows: list[dict]
    summary: list[dict]


class TimesheetReportService:
    """Per-day rows and per-employee minute totals over a date range.

    Open records are counted up to the report time.
    """

    def __init__(self, attendance: AttendanceRepository, *, clock: Callable[[], datetime] = now_local):
        self._attendance = attendance
        self._clock = clock

    def default_range(self) -> tuple[str, str]:
        """The last DEFAULT_REPORT_DAYS days up to today, as date keys."""
        today = self._clock().date()
        start = today - timedelta(days=DEFAULT_REPORT_DAYS)
        return start.strftime(DATE_KEY_FORMAT), today.strftime(DATE_KEY_FORMAT)

    def build_report(
        self,
        *,
        start: str,
        end: str,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> ReportData:
        start = parse_date_key(start)
        end = parse_date_key(end)
        if end < start:
            raise ValidationError("'to' date cannot be before 'from' date")

        now = whole_seconds(self._clock())
        summary_map: dict[tuple[str, str], dict] = {}
        out_rows: list[dict] = []

        for r in self._iter_records(start=start, end=end, email=email, name=name):
            minutes = self._worked(r, now=now)
            out_rows.append(
                {
                    "date": r.work_date,
                    "employee_name": r.employee.name,
                    "email": r.employee.email,
                    "check_in": r.check_in.strftime("%H:%M") if r.check_in else "-",
                    "check_out": r.check_out.strftime("%H:%M") if r.check_out else "-",
                    "status": r.status.value,
                    "breaks": len(r.break_sessions),
                    "break_minutes": r.total_break_minutes,
                    "bio_breaks": len(r.bio_break_sessions),
                    "bio_break_minutes": r.total_bio_break_minutes,
                    "worked_minutes": minutes,
                    "worked": format_minutes(minutes),
                }
            )

            key = (r.employee.name, r.employee.email)
            s = summary_map.get(key)
            if not s:
                s = {
                    "employee_name": r.employee.name,
                    "email": r.employee.email,
                    "days": 0,
                    "worked_minutes": 0,
                    "break_minutes": 0,
                    "bio_break_minutes": 0,
                }
                summary_map[key] = s
            s["days"] += 1
            s["worked_minutes"] += minutes
            s["break_minutes"] += r.total_break_minutes
            s["bio_break_minutes"] += r.total_bio_break_minutes

        summary = []
        for s in summary_map.values():
            summary.append({**s, "worked": format_minutes(s["worked_minutes"])})

        summary.sort(key=lambda x: x["worked_minutes"], reverse=True)
        return ReportData(rows=out_rows, summary=summary)

    def export_csv(self, data: ReportData) -> bytes:
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=REPORT_FIELDS)
        writer.writeheader()
        for row in data.rows:
            writer.writerow(row)
        return out.getvalue().encode("utf-8-sig")

    def _iter_records(self, *, start: str, end: str, email: Optional[str], name: Optional[str]):
        offset = 0
        while True:
            batch = self._attendance.list_records(
                start_date=start,
                end_date=end,
                email=email,
                name=name,
                limit=MAX_RECORDS_PAGE_SIZE,
                offset=offset,
            )
            yield from batch
            if len(batch) < MAX_RECORDS_PAGE_SIZE:
                return
            offset += len(batch)

    @staticmethod
    def _worked(r: AttendanceRecord, *, now: datetime) -> int:
        if not r.is_open:
            return r.total_worked_minutes
        # An ongoing break is not in the stored totals yet.
        ongoing = r.open_interval()
        extra = interval_minutes(ongoing[1].start, now) if ongoing else 0
        return worked_minutes(r.check_in, None, r.total_break_minutes + extra, r.total_bio_break_minutes, now=now)
