from __future__ import annotations

from datetime import date, datetime

import pytest

from src.attendance_leave.attendance_leave.balances.service import BalanceService
from src.attendance_leave.attendance_leave.core.enums import IssueReason, LeaveStatus, LeaveType, Role
from src.attendance_leave.attendance_leave.core.exceptions import ValidationError
from src.attendance_leave.attendance_leave.employees.model import Employee, LeaveBuckets
from src.attendance_leave.attendance_leave.leaves.auto_leave import (
    AUTO_LEAVE_REASON,
    AutoLeaveGenerator,
    AutoLeaveOptions,
)
from src.attendance_leave.attendance_leave.leaves.issues import AttendanceIssueDetector
from src.attendance_leave.attendance_leave.leaves.model import AttendanceIssue

from tests.fakes import (
    FakeAttendanceRepo,
    FakeCompanyRepo,
    FakeEmployeeRepo,
    FakeLeaveLedger,
    FakeLeaveRepo,
    FakePenaltyRepo,
    make_company,
)

# Wednesday, just after midnight: a two-day lookback covers Mon 11 and Tue 12.
NOW = datetime(2024, 3, 13, 0, 30)


class Harness:
    def __init__(self, *employees: Employee, notify=None, lookback_days=2, detector=None):
        self.attendance = FakeAttendanceRepo()
        self.leaves = FakeLeaveRepo()
        self.penalties = FakePenaltyRepo()
        self.employees = FakeEmployeeRepo(*employees)
        self.companies = FakeCompanyRepo(make_company())
        self.balances = BalanceService(self.employees, self.companies)
        self.ledger = FakeLeaveLedger(self.employees, self.leaves, self.penalties)
        detector = detector or AttendanceIssueDetector(
            self.attendance, self.leaves, self.penalties, self.employees, self.companies
        )
        self.generator = AutoLeaveGenerator(
            self.employees,
            self.ledger,
            detector,
            self.balances,
            lookback_days=lookback_days,
            notify=notify,
        )

    def run(self, **kwargs):
        return self.generator.run(AutoLeaveOptions(now=NOW, **kwargs))


def _employee(employee_id: int, **kwargs) -> Employee:
    defaults = dict(name=f"Employee {employee_id}", company_id=1, total_leave_available=10)
    defaults.update(kwargs)
    return Employee(employee_id=employee_id, **defaults)


def test_each_missing_day_gets_an_auto_leave_and_penalty():
    h = Harness(_employee(1))
    h.attendance.add(employee_id=1, work_date=date(2024, 3, 12), first_punch_in=datetime(2024, 3, 12, 9, 0))

    summary = h.run()

    assert summary.window_start == date(2024, 3, 11)
    assert summary.window_end_exclusive == date(2024, 3, 13)
    assert summary.leaves_created == 1

    [leave] = h.leaves.all()
    [penalty] = h.penalties.all()
    assert leave.start_date == leave.end_date == date(2024, 3, 11)
    assert leave.status is LeaveStatus.APPROVED
    assert leave.is_auto and leave.auto_penalty_id == penalty.penalty_id
    assert leave.reason == AUTO_LEAVE_REASON
    assert penalty.allocations == leave.allocations == LeaveBuckets(paid=1)

    employee = h.employees.get_by_id(1)
    assert employee.leave_usage.paid == 1
    assert employee.total_leave_available == 9


def test_rerun_over_same_window_charges_nothing_new():
    h = Harness(_employee(1))

    first = h.run()
    second = h.run()

    assert first.leaves_created == 2
    assert second.leaves_created == 0
    assert h.employees.get_by_id(1).total_leave_available == 8


def test_exhausted_pool_falls_through_to_unpaid():
    h = Harness(_employee(1, total_leave_available=0))

    h.run()

    assert {leave.fallback_type for leave in h.leaves.all()} == {LeaveType.UNPAID}
    assert h.employees.get_by_id(1).leave_usage == LeaveBuckets(unpaid=2)


def test_only_active_company_employees_are_processed():
    h = Harness(
        _employee(1),
        _employee(2, role=Role.ADMIN),
        _employee(3, is_active=False),
        _employee(4, company_id=None),
    )

    summary = h.run()

    assert summary.employees == 1
    assert {leave.employee_id for leave in h.leaves.all()} == {1}


def test_one_employee_failing_does_not_stop_the_others():
    h = Harness(_employee(1), _employee(2))
    h.ledger.fail_for.add(1)

    summary = h.run()

    assert summary.failures == 1
    assert summary.employees == 2
    assert {leave.employee_id for leave in h.leaves.all()} == {2}
    assert summary.leaves_created == 2

    untouched = h.employees.get_by_id(1)
    assert untouched.leave_usage == LeaveBuckets()
    assert untouched.total_leave_available == 10
    assert [p for p in h.penalties.all() if p.employee_id == 1] == []


def test_rerun_after_failed_write_charges_each_day_once():
    h = Harness(_employee(1))
    h.ledger.fail_for.add(1)
    h.run()
    h.ledger.fail_for.clear()

    summary = h.run()

    assert summary.leaves_created == 2
    employee = h.employees.get_by_id(1)
    assert employee.leave_usage == LeaveBuckets(paid=2)
    assert employee.total_leave_available == 8
    assert len(h.penalties.all()) == 2


class StaleDetector:
    """Reports both days every time, as a detector racing another run would."""

    def collect_issues(self, employee_id, window_start, window_end_exclusive, **_kwargs):
        return [
            AttendanceIssue(employee_id=employee_id, date=date(2024, 3, day), reason=IssueReason.NO_RECORD)
            for day in (11, 12)
        ]


def test_day_already_charged_is_skipped_without_debit():
    h = Harness(_employee(1), detector=StaleDetector())
    h.run()

    summary = h.run()

    assert summary.leaves_created == 0
    assert summary.failures == 0
    assert summary.notices == []
    employee = h.employees.get_by_id(1)
    assert employee.leave_usage == LeaveBuckets(paid=2)
    assert employee.total_leave_available == 8
    assert len(h.leaves.all()) == 2


def test_version_conflict_retries_the_whole_charge():
    h = Harness(_employee(1))
    h.employees.conflicts_to_inject = 1

    summary = h.run()

    assert summary.leaves_created == 2
    assert len(h.penalties.all()) == 2
    assert h.employees.get_by_id(1).total_leave_available == 8


def test_notices_are_collected_and_sent():
    sent = []
    h = Harness(_employee(1), _employee(2), notify=sent.append)
    for day in (11, 12):
        h.attendance.add(employee_id=2, work_date=date(2024, 3, day), first_punch_in=datetime(2024, 3, day, 9, 0))

    summary = h.run()

    assert [(n.employee_id, n.dates) for n in summary.notices] == [(1, (date(2024, 3, 11), date(2024, 3, 12)))]
    assert sent == summary.notices


def test_notify_failure_is_contained():
    def boom(_notice):
        raise RuntimeError("mail server down")

    h = Harness(_employee(1), notify=boom)

    summary = h.run()

    assert summary.leaves_created == 2
    assert summary.failures == 0


def test_lookback_override_and_validation():
    h = Harness(_employee(1))

    summary = h.run(lookback_days=1)
    assert summary.window_start == date(2024, 3, 12)

    for bad in (0, -3, "abc", True):
        with pytest.raises(ValidationError):
            h.run(lookback_days=bad)

    with pytest.raises(ValidationError):
        Harness(_employee(1), lookback_days=0)
