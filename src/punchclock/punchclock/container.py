from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.factory import PunchTransitionFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .core.constants import DEFAULT_PUNCH_MAX_ATTEMPTS, DEFAULT_RECORDS_PAGE_SIZE
from .database.connection import DBConfig, DatabaseConnection
from .evidence.mysql_evidence_log import MySQLEvidenceLog
from .evidence.repository import EvidenceLog
from .evidence.service import EvidenceService
from .reports.service import TimesheetReportService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    attendance_repo: AttendanceRepository
    evidence_log: EvidenceLog

    attendance_service: AttendanceService
    evidence_service: EvidenceService
    report_service: TimesheetReportService

    records_page_size: int = DEFAULT_RECORDS_PAGE_SIZE


def wire_services(
    *,
    attendance_repo: AttendanceRepository,
    evidence_log: EvidenceLog,
    conn: Optional[DatabaseConnection] = None,
    clock=None,
    max_attempts: int = DEFAULT_PUNCH_MAX_ATTEMPTS,
    records_page_size: int = DEFAULT_RECORDS_PAGE_SIZE,
) -> Container:
    clock_kw = {"clock": clock} if clock else {}

    attendance_service = AttendanceService(
        attendance_repo,
        transition_factory=PunchTransitionFactory(),
        max_attempts=max_attempts,
        **clock_kw,
    )
    evidence_service = EvidenceService(evidence_log, attendance_repo, **clock_kw)
    report_service = TimesheetReportService(attendance_repo, **clock_kw)

    return Container(
        conn=conn,
        attendance_repo=attendance_repo,
        evidence_log=evidence_log,
        attendance_service=attendance_service,
        evidence_service=evidence_service,
        report_service=report_service,
        records_page_size=int(records_page_size),
    )


def build_container(
    *,
    db_config: dict,
    max_attempts: int = DEFAULT_PUNCH_MAX_ATTEMPTS,
    records_page_size: int = DEFAULT_RECORDS_PAGE_SIZE,
) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
        connection_timeout=int(db_config.get("connection_timeout", 10)),
    )
    conn = DatabaseConnection.get_instance(config)

    return wire_services(
        attendance_repo=MySQLAttendanceRepository(conn),
        evidence_log=MySQLEvidenceLog(conn),
        conn=conn,
        max_attempts=max_attempts,
        records_page_size=records_page_size,
    )
