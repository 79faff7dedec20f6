from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local, parse_client_timestamp, parse_date_key, whole_seconds
from ..core.constants import CLIENT_SKEW_WARN_SECONDS, DEFAULT_PUNCH_MAX_ATTEMPTS, MAX_RECORDS_PAGE_SIZE
from ..core.enums import PunchAction
from ..core.exceptions import DuplicateRecord, InvalidTransition, RecordNotFound, StaleRecord, ValidationError
from .factory import PunchTransitionFactory
from .model import AttendanceRecord, EmployeeKey, RecordPage
from .repository import AttendanceRepository
from .strategies.base import PunchTransition

logger = logging.getLogger(__name__)


class AttendanceService:
    """Applies punch actions to daily records.

    Holds no per-employee state between calls. Every timestamp written comes
    from ``clock``; a client-supplied timestamp is only logged.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        transition_factory: PunchTransitionFactory | None = None,
        clock: Callable[[], datetime] = now_local,
        max_attempts: int = DEFAULT_PUNCH_MAX_ATTEMPTS,
    ):
        self._attendance = attendance
        self._factory = transition_factory or PunchTransitionFactory()
        self._clock = clock
        self._max_attempts = max(1, int(max_attempts))

    def punch(
        self,
        *,
        employee_name: str,
        email: str,
        work_date: str,
        action: str | PunchAction,
        client_timestamp: str | datetime | None = None,
    ) -> AttendanceRecord:
        employee = EmployeeKey.of(employee_name, email)
        day = parse_date_key(work_date)
        act = action if isinstance(action, PunchAction) else PunchAction.parse(action)
        self._note_client_clock(employee, act, client_timestamp)

        transition = self._factory.for_action(act)
        if act is PunchAction.CHECK_IN:
            return self._check_in(transition, employee, day)
        return self._advance(transition, employee, day)

    def get_record(self, *, employee_name: str, email: str, work_date: str) -> Optional[AttendanceRecord]:
        return self._attendance.get_record(EmployeeKey.of(employee_name, email), parse_date_key(work_date))

    def get_open_record(self, *, employee_name: str, email: str, work_date: str) -> Optional[AttendanceRecord]:
        return self._attendance.find_open_record(EmployeeKey.of(employee_name, email), parse_date_key(work_date))

    def list_records(
        self,
        *,
        start_date: str | None = None,
        end_date: str | None = None,
        email: str | None = None,
        name: str | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> RecordPage:
        start = parse_date_key(start_date) if start_date else None
        end = parse_date_key(end_date) if end_date else None
        if start and end and end < start:
            raise ValidationError("'to' date cannot be before 'from' date")

        page = max(1, int(page))
        limit = min(max(1, int(limit)), MAX_RECORDS_PAGE_SIZE)

        total = self._attendance.count_records(start_date=start, end_date=end, email=email, name=name)
        records = self._attendance.list_records(
            start_date=start,
            end_date=end,
            email=email,
            name=name,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return RecordPage(records=list(records), total=total, page=page, limit=limit)

    def delete_record(self, record_id) -> None:
        """Remove a whole day, intervals and evidence included."""
        try:
            rid = int(record_id)
        except (TypeError, ValueError):
            raise ValidationError("id is required") from None
        if rid <= 0:
            raise ValidationError("id is required")

        if not self._attendance.delete(rid):
            raise RecordNotFound(f"No time entry with id {rid}")
        logger.info("record %s deleted", rid)

    def _now(self) -> datetime:
        return whole_seconds(self._clock())

    def _check_in(self, transition: PunchTransition, employee: EmployeeKey, day: str) -> AttendanceRecord:
        current = self._attendance.get_record(employee, day)
        record = transition.apply(current, employee=employee, work_date=day, now=self._now())
        try:
            created = self._attendance.create(record)
        except DuplicateRecord:
            # Lost the race to a concurrent check-in: re-read once so the caller
            # sees the usual "already checked in" rejection.
            logger.warning("concurrent check-in for %s on %s; re-reading", employee.email, day)
            current = self._attendance.get_record(employee, day)
            if current is None:
                raise
            transition.check_allowed(current)
            raise

        logger.info("check-in %s <%s> on %s (record %s)", employee.name, employee.email, day, created.record_id)
        return created

    def _advance(self, transition: PunchTransition, employee: EmployeeKey, day: str) -> AttendanceRecord:
        attempt = 1
        while True:
            current = self._attendance.find_open_record(employee, day)
            try:
                record = transition.apply(current, employee=employee, work_date=day, now=self._now())
            except InvalidTransition:
                logger.warning("rejected %s for %s on %s", transition.action.value, employee.email, day)
                raise

            try:
                saved = self._attendance.save(record)
            except StaleRecord:
                if attempt >= self._max_attempts:
                    logger.error(
                        "giving up %s for %s on %s after %d attempts",
                        transition.action.value, employee.email, day, attempt,
                    )
                    raise
                logger.warning(
                    "record %s changed under %s (attempt %d); retrying",
                    record.record_id, transition.action.value, attempt,
                )
                attempt += 1
                continue

            logger.info(
                "%s %s <%s> on %s -> %s",
                transition.action.value, employee.name, employee.email, day, saved.status.value,
            )
            return saved

    def _note_client_clock(self, employee: EmployeeKey, action: PunchAction, client_timestamp) -> None:
        ts = parse_client_timestamp(client_timestamp)
        if ts is None:
            return
        if ts.tzinfo is not None:
            ts = ts.astimezone().replace(tzinfo=None)

        skew = abs((self._now() - ts).total_seconds())
        if skew > CLIENT_SKEW_WARN_SECONDS:
            logger.warning("client clock for %s is %.0fs off on %s; server time used", employee.email, skew, action.value)
        else:
            logger.debug("client timestamp for %s on %s: %s", employee.email, action.value, ts.isoformat())
