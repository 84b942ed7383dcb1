from __future__ import annotations

from datetime import date, datetime

import pytest

from src.attendance_leave.attendance_leave.balances.service import BalanceService
from src.attendance_leave.attendance_leave.core.enums import LeaveStatus, LeaveType
from src.attendance_leave.attendance_leave.core.exceptions import NotFoundError, ValidationError
from src.attendance_leave.attendance_leave.employees.model import Employee, LeaveBuckets
from src.attendance_leave.attendance_leave.leaves import approval as approval_module
from src.attendance_leave.attendance_leave.leaves.approval import LeaveApprovalService

from tests.fakes import FakeCompanyRepo, FakeEmployeeRepo, FakeLeaveLedger, FakeLeaveRepo, FakePenaltyRepo, make_company


@pytest.fixture
def env():
    employees = FakeEmployeeRepo(
        Employee(employee_id=3, name="Nila", company_id=1, total_leave_available=10, leave_usage=LeaveBuckets(sick=6))
    )
    companies = FakeCompanyRepo(make_company(holidays=[date(2024, 3, 13)]))
    leaves = FakeLeaveRepo()
    ledger = FakeLeaveLedger(employees, leaves, FakePenaltyRepo())
    service = LeaveApprovalService(leaves, ledger, BalanceService(employees, companies))
    return service, leaves, employees


def _pending(leaves: FakeLeaveRepo, start: date, end: date, type=LeaveType.SICK, fallback_type=None):
    return leaves.create(
        employee_id=3,
        company_id=1,
        type=type,
        start_date=start,
        end_date=end,
        status=LeaveStatus.PENDING,
        fallback_type=fallback_type,
    )


def test_approve_charges_working_days_through_fallback(env):
    service, leaves, employees = env
    # Mon 11 .. Sun 17 with a holiday on Wed 13: four working days.
    leave = _pending(leaves, date(2024, 3, 11), date(2024, 3, 17), fallback_type=LeaveType.CASUAL)

    approved = service.approve(leave.leave_id, approver_id=1, message="  get well  ")

    assert approved.status is LeaveStatus.APPROVED
    assert approved.allocations == LeaveBuckets(casual=4)
    assert approved.fallback_type is LeaveType.CASUAL
    assert approved.admin_message == "get well"
    assert employees.get_by_id(3).total_leave_available == 6


def test_leave_on_non_working_days_costs_nothing(env):
    service, leaves, employees = env
    leave = _pending(leaves, date(2024, 3, 16), date(2024, 3, 17), type=LeaveType.PAID)

    approved = service.approve(leave.leave_id, approver_id=1)

    assert approved.allocations == LeaveBuckets()
    assert employees.get_by_id(3).version == 0


def test_reject_leaves_balances_alone(env):
    service, leaves, employees = env
    leave = _pending(leaves, date(2024, 3, 11), date(2024, 3, 11))

    rejected = service.reject(leave.leave_id, approver_id=1, message="busy week")

    assert rejected.status is LeaveStatus.REJECTED
    assert employees.get_by_id(3).total_leave_available == 10


def test_decided_leave_cannot_be_decided_again(env):
    service, leaves, _ = env
    leave = _pending(leaves, date(2024, 3, 11), date(2024, 3, 11), type=LeaveType.PAID)
    service.approve(leave.leave_id, approver_id=1)

    with pytest.raises(ValidationError):
        service.approve(leave.leave_id, approver_id=1)
    with pytest.raises(ValidationError):
        service.reject(leave.leave_id, approver_id=1)
    with pytest.raises(NotFoundError):
        service.approve(999, approver_id=1)


def test_leave_decided_elsewhere_is_not_debited(env):
    service, leaves, employees = env
    leave = _pending(leaves, date(2024, 3, 11), date(2024, 3, 12), type=LeaveType.PAID)
    original_get = leaves.get_by_id
    calls = []

    def decided_after_first_read(leave_id):
        # The first read sees PENDING; by the time of the write another admin rejected it.
        calls.append(leave_id)
        if len(calls) == 2:
            leaves.decide(
                leave_id=leave_id,
                status=LeaveStatus.REJECTED,
                approver_id=2,
                allocations=LeaveBuckets(),
                fallback_type=None,
            )
        return original_get(leave_id)

    leaves.get_by_id = decided_after_first_read

    with pytest.raises(ValidationError):
        service.approve(leave.leave_id, approver_id=1)

    employee = employees.get_by_id(3)
    assert employee.total_leave_available == 10
    assert employee.leave_usage == LeaveBuckets(sick=6)
    assert employee.version == 0
    assert original_get(leave.leave_id).status is LeaveStatus.REJECTED


def test_future_leave_accrues_only_up_to_approval_day(monkeypatch):
    employees = FakeEmployeeRepo(
        Employee(employee_id=3, name="Nila", company_id=1, total_leave_available=5, last_accrued_ym="2024-03")
    )
    companies = FakeCompanyRepo(make_company(total_annual=24, rate_per_month=1))
    leaves = FakeLeaveRepo()
    service = LeaveApprovalService(
        leaves, FakeLeaveLedger(employees, leaves, FakePenaltyRepo()), BalanceService(employees, companies)
    )
    monkeypatch.setattr(approval_module, "now_local", lambda: datetime(2024, 3, 20, 10, 0))
    # Mon 10 and Tue 11 June, approved in March.
    leave = _pending(leaves, date(2024, 6, 10), date(2024, 6, 11), type=LeaveType.PAID)

    approved = service.approve(leave.leave_id, approver_id=1)

    assert approved.allocations == LeaveBuckets(paid=2)
    employee = employees.get_by_id(3)
    assert employee.total_leave_available == 3
    assert employee.last_accrued_ym == "2024-03"
