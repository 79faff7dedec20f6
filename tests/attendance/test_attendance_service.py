from __future__ import annotations

import threading
from datetime import datetime

import pytest

from src.punchclock.punchclock.attendance.durations import interval_minutes
from src.punchclock.punchclock.attendance.factory import PunchTransitionFactory
from src.punchclock.punchclock.attendance.model import EmployeeKey
from src.punchclock.punchclock.attendance.service import AttendanceService
from src.punchclock.punchclock.core.enums import AttendanceStatus, PunchAction
from src.punchclock.punchclock.core.exceptions import (
    DuplicateRecord,
    InvalidTransition,
    RecordNotFound,
    StaleRecord,
    ValidationError,
)

ALL_SEQUENCES = [
    (["check-in"], AttendanceStatus.CHECKED_IN),
    (["check-in", "break-start"], AttendanceStatus.ON_BREAK),
    (["check-in", "break-start", "break-end"], AttendanceStatus.RETURNED),
    (["check-in", "bio-start"], AttendanceStatus.ON_BIO_BREAK),
    (["check-in", "bio-start", "bio-end"], AttendanceStatus.RETURNED),
    (["check-in", "break-start", "break-end", "bio-start", "bio-end", "break-start"], AttendanceStatus.ON_BREAK),
    (["check-in", "check-out"], AttendanceStatus.CHECKED_OUT),
    (["check-in", "bio-start", "check-out"], AttendanceStatus.CHECKED_OUT),
    (["check-in", "break-start", "break-end", "check-out"], AttendanceStatus.CHECKED_OUT),
]


@pytest.fixture
def svc(attendance_repo, clock) -> AttendanceService:
    return AttendanceService(attendance_repo, clock=clock)


@pytest.mark.parametrize("actions, expected", ALL_SEQUENCES)
def test_final_status_matches_last_action(svc, clock, employee, actions, expected):
    record = None
    for action in actions:
        record = svc.punch(**employee, action=action)
        clock.advance(minutes=7)

    assert record.status is expected
    assert svc.get_record(**employee).status is expected


def test_full_day_scenario(svc, clock, employee):
    svc.punch(**employee, action="check-in")
    clock.at(12, 0)
    svc.punch(**employee, action="break-start")
    clock.at(12, 30)
    svc.punch(**employee, action="break-end")
    clock.at(18, 0)
    record = svc.punch(**employee, action="check-out")

    assert record.status is AttendanceStatus.CHECKED_OUT
    assert record.check_in == datetime(2026, 2, 2, 9, 0)
    assert record.check_out == datetime(2026, 2, 2, 18, 0)
    assert record.total_break_minutes == 30
    assert record.total_bio_break_minutes == 0
    assert record.total_worked_minutes == 510


def test_duplicate_break_start_is_rejected_and_leaves_one_open_interval(svc, clock, employee):
    svc.punch(**employee, action="check-in")
    clock.at(10, 0)
    svc.punch(**employee, action="break-start")
    clock.at(10, 1)

    with pytest.raises(InvalidTransition, match="Already on a break"):
        svc.punch(**employee, action="break-start")

    record = svc.get_record(**employee)
    assert len(record.break_sessions) == 1
    assert record.break_sessions[0].is_open
    assert record.status is AttendanceStatus.ON_BREAK


def test_duplicate_check_in_is_rejected(svc, attendance_repo, employee):
    svc.punch(**employee, action="check-in")

    with pytest.raises(InvalidTransition, match="active shift"):
        svc.punch(**employee, action="check-in")

    assert attendance_repo.creates == 1


def test_checkout_from_break_closes_interval_and_excludes_it(svc, clock, employee):
    svc.punch(**employee, action="check-in")
    clock.at(17, 0)
    svc.punch(**employee, action="break-start")
    clock.at(18, 0)

    record = svc.punch(**employee, action="check-out")

    assert record.status is AttendanceStatus.CHECKED_OUT
    assert record.break_sessions[-1].end == datetime(2026, 2, 2, 18, 0)
    assert record.break_sessions[-1].minutes == 60
    assert record.total_break_minutes == 60
    assert record.total_worked_minutes == 540 - 60


def test_checked_out_record_accepts_no_more_punches(svc, clock, employee):
    svc.punch(**employee, action="check-in")
    clock.at(18, 0)
    svc.punch(**employee, action="check-out")

    for action in ("check-in", "break-start", "bio-end", "check-out"):
        with pytest.raises(InvalidTransition):
            svc.punch(**employee, action=action)

    assert svc.get_open_record(**employee) is None
    assert svc.get_record(**employee).status is AttendanceStatus.CHECKED_OUT


def test_totals_are_recomputed_from_intervals_on_every_punch(svc, clock, employee):
    svc.punch(**employee, action="check-in")
    clock.at(10, 0)
    svc.punch(**employee, action="bio-start")
    clock.at(10, 6)
    svc.punch(**employee, action="bio-end")
    clock.at(11, 0)
    svc.punch(**employee, action="bio-start")
    clock.at(11, 4)
    record = svc.punch(**employee, action="bio-end")

    assert [i.minutes for i in record.bio_break_sessions] == [6, 4]
    assert record.total_bio_break_minutes == 10
    assert record.total_worked_minutes == 124 - 10


def test_client_timestamp_is_not_used_for_durations(svc, clock, employee):
    svc.punch(**employee, action="check-in", client_timestamp="2026-02-02T05:00:00")

    record = svc.get_record(**employee)
    assert record.check_in == datetime(2026, 2, 2, 9, 0)


def test_bad_client_timestamp_is_a_validation_error(svc, employee):
    with pytest.raises(ValidationError):
        svc.punch(**employee, action="check-in", client_timestamp="yesterday")


def test_name_and_email_pair_is_the_identity(svc, employee):
    svc.punch(**employee, action="check-in")
    other = {**employee, "employee_name": "John Cruz"}

    record = svc.punch(**other, action="check-in")

    assert record.employee.name == "John Cruz"
    assert svc.get_record(**employee).record_id != record.record_id


def test_email_is_normalized(svc, employee):
    svc.punch(**employee, action="check-in")

    shouty = {**employee, "email": "  TEAM@Acme.io "}
    assert svc.get_record(**shouty) is not None


@pytest.mark.parametrize("bad_date", ["2026/02/02", "02-02-2026", "", "2026-2-2"])
def test_date_key_shape_is_validated(svc, employee, bad_date):
    with pytest.raises(ValidationError):
        svc.punch(**{**employee, "work_date": bad_date}, action="check-in")


def test_future_dates_are_accepted(svc, employee):
    record = svc.punch(**{**employee, "work_date": "2031-12-31"}, action="check-in")
    assert record.work_date == "2031-12-31"


def test_missing_identity_is_rejected(svc, employee):
    with pytest.raises(ValidationError):
        svc.punch(**{**employee, "employee_name": "  "}, action="check-in")
    with pytest.raises(ValidationError):
        svc.punch(**{**employee, "email": "not-an-email"}, action="check-in")


def test_concurrent_check_ins_create_exactly_one_record(racing_repo, clock, employee):
    svc = AttendanceService(racing_repo, clock=clock)
    results: list[object] = []

    def worker():
        try:
            results.append(svc.punch(**employee, action=PunchAction.CHECK_IN))
        except (InvalidTransition, DuplicateRecord) as e:
            results.append(e)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert racing_repo.creates == 1
    errors = [r for r in results if isinstance(r, Exception)]
    assert len(errors) == 1
    assert isinstance(errors[0], InvalidTransition)


def test_concurrent_break_starts_open_a_single_interval(racing_repo, clock, employee):
    key, day = _key(employee)
    opened = PunchTransitionFactory().for_action(PunchAction.CHECK_IN).apply(None, employee=key, work_date=day, now=clock())
    racing_repo.create(opened)

    svc = AttendanceService(racing_repo, clock=clock)
    results: list[object] = []

    def worker():
        try:
            results.append(svc.punch(**employee, action="break-start"))
        except InvalidTransition as e:
            results.append(e)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    racing_repo.armed = False
    record = racing_repo.get_record(key, day)
    assert len(record.break_sessions) == 1
    assert sum(isinstance(r, InvalidTransition) for r in results) == 1


class _AlwaysStale:
    """Wraps a repository so every save loses the version race."""

    def __init__(self, inner):
        self._inner = inner
        self.save_calls = 0

    def __getattr__(self, name):
        return getattr(self._inner, name)

    def save(self, record):
        self.save_calls += 1
        raise StaleRecord("someone else wrote first")


def test_stale_saves_are_retried_then_surface(attendance_repo, clock, employee):
    AttendanceService(attendance_repo, clock=clock).punch(**employee, action="check-in")
    flaky = _AlwaysStale(attendance_repo)
    svc = AttendanceService(flaky, clock=clock, max_attempts=3)

    with pytest.raises(StaleRecord):
        svc.punch(**employee, action="break-start")

    assert flaky.save_calls == 3
    assert attendance_repo.get_record(*_key(employee)).status is AttendanceStatus.CHECKED_IN


def _key(employee):
    return EmployeeKey.of(employee["employee_name"], employee["email"]), employee["work_date"]


def test_list_records_pages_and_filters(svc, clock, employee):
    for day in ("2026-02-01", "2026-02-02", "2026-02-03"):
        svc.punch(**{**employee, "work_date": day}, action="check-in")
    svc.punch(employee_name="Other", email="other@acme.io", work_date="2026-02-02", action="check-in")

    page = svc.list_records(start_date="2026-02-02", end_date="2026-02-03", email="team@", page=1, limit=1)

    assert page.total == 2
    assert page.total_pages == 2
    assert [r.work_date for r in page.records] == ["2026-02-03"]

    with pytest.raises(ValidationError):
        svc.list_records(start_date="2026-02-03", end_date="2026-02-01")


def test_sub_second_clock_is_stored_at_whole_seconds(svc, clock, employee):
    clock.now = clock.now.replace(microsecond=250000)
    svc.punch(**employee, action="check-in")
    clock.now = clock.now.replace(hour=10, minute=0, second=0, microsecond=400000)
    svc.punch(**employee, action="break-start")
    clock.now = clock.now.replace(second=30, microsecond=0)

    record = svc.punch(**employee, action="break-end")

    interval = record.break_sessions[0]
    assert record.check_in.microsecond == 0
    assert interval.start == datetime(2026, 2, 2, 10, 0, 0)
    assert interval.minutes == 1
    assert interval_minutes(interval.start, interval.end) == interval.minutes
    assert record.total_break_minutes == 1


def test_delete_record_frees_the_day(svc, attendance_repo, clock, employee):
    first = svc.punch(**employee, action="check-in")
    clock.at(17, 0)
    svc.punch(**employee, action="check-out")

    svc.delete_record(first.record_id)

    assert svc.get_record(**employee) is None
    again = svc.punch(**employee, action="check-in")
    assert again.status is AttendanceStatus.CHECKED_IN
    assert again.record_id != first.record_id


def test_delete_record_unknown_or_malformed_id(svc):
    with pytest.raises(RecordNotFound):
        svc.delete_record(999)
    for bad in (None, "", "abc", 0):
        with pytest.raises(ValidationError):
            svc.delete_record(bad)


@pytest.mark.parametrize(
    "override",
    [
        {"employee_name": 123},
        {"email": 123},
        {"work_date": 20260202},
        {"action": 123},
    ],
)
def test_non_string_inputs_are_validation_errors(svc, employee, override):
    args = {**employee, "action": "check-in", **override}
    with pytest.raises(ValidationError):
        svc.punch(**args)


def test_listing_with_equal_sort_keys_pages_without_overlap(svc, employee):
    svc.punch(**employee, action="check-in")
    svc.punch(**{**employee, "employee_name": "John Cruz"}, action="check-in")

    seen = [svc.list_records(page=p, limit=1).records[0].record_id for p in (1, 2)]

    assert seen == [2, 1]
