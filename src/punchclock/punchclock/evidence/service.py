from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Sequence

from ..attendance.model import EmployeeKey
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_local, parse_date_key, whole_seconds
from ..common.validators import require_url
from ..core.enums import PunchAction
from ..core.exceptions import RecordNotFound
from .model import EvidenceEntry
from .repository import EvidenceLog

logger = logging.getLogger(__name__)


class EvidenceService:
    """Attaches selfie URLs to attendance records.

    Attaching is not a punch: status and totals are left alone, checked-out
    records still accept evidence, and repeated calls simply append.
    """

    def __init__(
        self,
        evidence: EvidenceLog,
        attendance: AttendanceRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._evidence = evidence
        self._attendance = attendance
        self._clock = clock

    def attach(self, *, employee_name: str, email: str, work_date: str, action: str, url: str) -> EvidenceEntry:
        employee = EmployeeKey.of(employee_name, email)
        day = parse_date_key(work_date)
        tag = PunchAction.parse(action)
        url = require_url(url)

        record = self._attendance.get_record(employee, day)
        if record is None:
            raise RecordNotFound(f"No time entry found for {employee.email} on {day}")

        taken_at = whole_seconds(self._clock())
        entry = self._evidence.append(record.record_id, EvidenceEntry(action=tag.value, url=url, taken_at=taken_at))
        logger.info("evidence %s attached to record %s (%s)", entry.evidence_id, record.record_id, tag.value)
        return entry

    def list_for(self, *, employee_name: str, email: str, work_date: str) -> Sequence[EvidenceEntry]:
        record = self._attendance.get_record(EmployeeKey.of(employee_name, email), parse_date_key(work_date))
        if record is None:
            raise RecordNotFound(f"No time entry found for {email} on {work_date}")
        return self._evidence.list_for_record(record.record_id)
