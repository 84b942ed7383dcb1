from __future__ import annotations

from datetime import date

import pytest

from src.attendance_leave.attendance_leave.balances.service import BalanceService
from src.attendance_leave.attendance_leave.core.enums import LeaveType
from src.attendance_leave.attendance_leave.core.exceptions import (
    AlreadyRecordedError,
    ConcurrentUpdateError,
    NotFoundError,
)
from src.attendance_leave.attendance_leave.employees.model import Employee, LeaveBuckets

from tests.fakes import FakeCompanyRepo, FakeEmployeeRepo, make_company


def _service(employee: Employee, *, company=None, max_retries=5):
    employees = FakeEmployeeRepo(employee)
    companies = FakeCompanyRepo(company or make_company(caps=LeaveBuckets(paid=10, casual=5, sick=5)))
    return BalanceService(employees, companies, max_retries=max_retries), employees, companies


def _employee(**kwargs) -> Employee:
    defaults = dict(employee_id=7, name="Asha", company_id=1, total_leave_available=10)
    defaults.update(kwargs)
    return Employee(**defaults)


def test_consume_debits_usage_pool_and_balances_in_one_write():
    svc, repo, _ = _service(_employee(leave_usage=LeaveBuckets(paid=10)))

    updated, plan = svc.consume(7, LeaveType.PAID, 1, as_of=date(2024, 3, 11))

    assert plan.allocations == LeaveBuckets(casual=1)
    stored = repo.get_by_id(7)
    assert stored.leave_usage == LeaveBuckets(paid=10, casual=1)
    assert stored.total_leave_available == 9
    assert stored.leave_balances == LeaveBuckets(paid=0, casual=4, sick=5, unpaid=0)
    assert stored.version == 1
    assert updated == stored
    assert repo.writes == 1


def test_refund_restores_what_consume_took():
    svc, repo, _ = _service(_employee(leave_usage=LeaveBuckets(paid=3), total_leave_available=7))

    _, plan = svc.consume(7, LeaveType.PAID, 2, as_of=date(2024, 3, 11))
    svc.refund(7, plan.allocations)

    stored = repo.get_by_id(7)
    assert stored.leave_usage == LeaveBuckets(paid=3)
    assert stored.total_leave_available == 7


def test_lost_race_is_retried_against_fresh_snapshot():
    svc, repo, _ = _service(_employee())
    repo.conflicts_to_inject = 2

    svc.consume(7, LeaveType.SICK, 1, as_of=date(2024, 3, 11))

    stored = repo.get_by_id(7)
    assert stored.leave_usage.sick == 1
    assert stored.total_leave_available == 9
    assert repo.writes == 1


def test_gives_up_after_max_retries():
    svc, repo, _ = _service(_employee(), max_retries=3)
    repo.conflicts_to_inject = 3

    with pytest.raises(ConcurrentUpdateError):
        svc.consume(7, LeaveType.SICK, 1, as_of=date(2024, 3, 11))

    assert repo.get_by_id(7).leave_usage == LeaveBuckets()


def test_custom_writer_gets_the_change_and_plan():
    svc, repo, _ = _service(_employee())
    seen = []

    def write(change, plan):
        seen.append((change, plan))
        if len(seen) == 1:
            return False
        return repo.update_balances(change)

    svc.consume(7, LeaveType.PAID, 1, as_of=date(2024, 3, 11), write=write)

    assert len(seen) == 2
    change, plan = seen[-1]
    assert plan.allocations == LeaveBuckets(paid=1)
    assert change.employee_id == 7 and change.expected_version == 0
    assert change.total_leave_available == 9
    assert repo.get_by_id(7).version == 1


def test_already_recorded_from_writer_is_not_retried():
    svc, repo, _ = _service(_employee())
    calls = []

    def write(change, _result):
        calls.append(change)
        raise AlreadyRecordedError("done before")

    with pytest.raises(AlreadyRecordedError):
        svc.refund(7, LeaveBuckets(paid=1), write=write)

    assert len(calls) == 1
    assert repo.get_by_id(7).total_leave_available == 10


def test_unknown_employee():
    svc, _, _ = _service(_employee())

    with pytest.raises(NotFoundError):
        svc.consume(99, LeaveType.PAID, 1)


def test_consume_accrues_before_planning():
    company = make_company(caps=LeaveBuckets(paid=10, casual=5, sick=5), total_annual=12, rate_per_month=1)
    svc, repo, _ = _service(_employee(total_leave_available=0, last_accrued_ym="2024-01"), company=company)

    _, plan = svc.consume(7, LeaveType.PAID, 1, as_of=date(2024, 3, 11))

    assert plan.allocations == LeaveBuckets(paid=1)
    stored = repo.get_by_id(7)
    assert stored.total_leave_available == 1
    assert stored.last_accrued_ym == "2024-03"


def test_company_cache_is_per_instance():
    svc, _, companies = _service(_employee())
    cache = svc.new_company_cache()

    cache.get(1)
    cache.get(1)
    assert companies.lookups == 1

    svc.new_company_cache().get(1)
    assert companies.lookups == 2
