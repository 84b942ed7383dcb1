from __future__ import annotations

from datetime import date, datetime
from types import SimpleNamespace

import pytest
from flask import Flask

from src.attendance_leave.attendance_leave.attendance.auto_punch_out import AutoPunchOutJob
from src.attendance_leave.attendance_leave.attendance.controller import register as register_attendance
from src.attendance_leave.attendance_leave.attendance.service import AttendanceLedgerService
from src.attendance_leave.attendance_leave.balances.service import BalanceService
from src.attendance_leave.attendance_leave.core.enums import LeaveStatus, LeaveType, Role
from src.attendance_leave.attendance_leave.employees.model import Employee
from src.attendance_leave.attendance_leave.leaves.approval import LeaveApprovalService
from src.attendance_leave.attendance_leave.leaves.controller import register as register_leaves
from src.attendance_leave.attendance_leave.leaves.issues import AttendanceIssueDetector
from src.attendance_leave.attendance_leave.leaves.reconciler import BackdatingReconciler

from tests.fakes import (
    FakeAttendanceRepo,
    FakeCompanyRepo,
    FakeEmployeeRepo,
    FakeLeaveLedger,
    FakeLeaveRepo,
    FakePenaltyRepo,
    make_company,
)


@pytest.fixture
def app_and_repos():
    employees = FakeEmployeeRepo(
        Employee(employee_id=1, name="Admin", company_id=1, role=Role.ADMIN),
        Employee(employee_id=2, name="Staff", company_id=1, total_leave_available=5, joining_date=date(2024, 1, 1)),
    )
    companies = FakeCompanyRepo(make_company())
    attendance = FakeAttendanceRepo()
    leaves = FakeLeaveRepo()
    penalties = FakePenaltyRepo()
    balances = BalanceService(employees, companies)
    ledger = FakeLeaveLedger(employees, leaves, penalties)

    container = SimpleNamespace(
        attendance_service=AttendanceLedgerService(attendance, employees),
        auto_punch_out_job=AutoPunchOutJob(attendance),
        issue_detector=AttendanceIssueDetector(attendance, leaves, penalties, employees, companies),
        leave_approval_service=LeaveApprovalService(leaves, ledger, balances),
        reconciler=BackdatingReconciler(employees, leaves, penalties, ledger, balances),
    )

    app = Flask(__name__)
    app.secret_key = "test"
    register_attendance(app, container)
    register_leaves(app, container)
    return app, SimpleNamespace(attendance=attendance, leaves=leaves, employees=employees)


def _login(client, employee_id, role):
    with client.session_transaction() as sess:
        sess["employee_id"] = employee_id
        sess["role"] = role


def test_punch_requires_login(app_and_repos):
    app, _ = app_and_repos
    client = app.test_client()

    resp = client.post("/attendance/punch", json={"action": "in"})

    assert resp.status_code == 401


def test_punch_in_and_read_today(app_and_repos):
    app, _ = app_and_repos
    client = app.test_client()
    _login(client, 2, "EMPLOYEE")

    resp = client.post("/attendance/punch", json={"action": "in"})
    assert resp.status_code == 200
    assert resp.get_json()["attendance"]["employee_id"] == 2

    again = client.post("/attendance/punch", json={"action": "in"})
    assert again.status_code == 400
    assert again.get_json()["error"] == "Already punched in"

    today = client.get("/attendance/today")
    assert today.get_json()["attendance"]["last_punch_in"] is not None


def test_admin_endpoints_reject_employees(app_and_repos):
    app, _ = app_and_repos
    client = app.test_client()
    _login(client, 2, "EMPLOYEE")

    assert client.post("/admin/attendance/auto-punch-out/run").status_code == 403
    assert client.post("/admin/leaves/reconcile", json={"employee_id": "all"}).status_code == 403


def test_issues_endpoint(app_and_repos):
    app, _ = app_and_repos
    client = app.test_client()
    _login(client, 1, "ADMIN")

    resp = client.get("/admin/attendance/issues?employee_id=2&start=2024-03-11&end=2024-03-13")
    assert resp.status_code == 200
    assert resp.get_json()["issues"] == [
        {"employee_id": 2, "date": "2024-03-11", "reason": "NO_RECORD"},
        {"employee_id": 2, "date": "2024-03-12", "reason": "NO_RECORD"},
    ]

    bad = client.get("/admin/attendance/issues?employee_id=2&start=2024-03-13&end=2024-03-11")
    assert bad.status_code == 400


def test_resolve_auto_punch_endpoint(app_and_repos):
    app, repos = app_and_repos
    record = repos.attendance.add(
        employee_id=2,
        work_date=date(2024, 3, 11),
        first_punch_in=datetime(2024, 3, 11, 9, 0),
        last_punch_out=datetime(2024, 3, 12, 0, 1),
        worked_ms=(15 * 60 + 1) * 60 * 1000,
        auto_punch_out=True,
        auto_punch_out_at=datetime(2024, 3, 12, 0, 1),
        auto_punch_last_in=datetime(2024, 3, 11, 9, 0),
    )
    client = app.test_client()
    _login(client, 1, "SUPERADMIN")

    resp = client.post(
        f"/admin/attendance/{record.attendance_id}/resolve-auto-punch",
        json={"corrected_out": "2024-03-11T17:00:00"},
    )

    assert resp.status_code == 200
    assert resp.get_json()["attendance"]["worked_ms"] == 8 * 3600 * 1000
    assert client.post("/admin/attendance/999/resolve-auto-punch", json={"corrected_out": "2024-03-11T17:00:00"}).status_code == 404


def test_approve_endpoint(app_and_repos):
    app, repos = app_and_repos
    leave = repos.leaves.create(
        employee_id=2,
        company_id=1,
        type=LeaveType.PAID,
        start_date=date(2024, 3, 11),
        end_date=date(2024, 3, 12),
        status=LeaveStatus.PENDING,
    )
    client = app.test_client()
    _login(client, 1, "ADMIN")

    resp = client.post(f"/admin/leaves/{leave.leave_id}/approve", json={"message": "ok"})

    body = resp.get_json()
    assert resp.status_code == 200
    assert body["leave"]["status"] == "APPROVED"
    assert body["leave"]["approver_id"] == 1
    assert body["leave"]["allocations"]["paid"] == 2
    assert repos.employees.get_by_id(2).total_leave_available == 3


def test_reconcile_endpoint(app_and_repos):
    app, _ = app_and_repos
    client = app.test_client()
    _login(client, 1, "ADMIN")

    resp = client.post("/admin/leaves/reconcile", json={"employee_id": "all"})
    assert resp.status_code == 200
    assert resp.get_json()["summary"]["employees_checked"] == 1

    assert client.post("/admin/leaves/reconcile", json={"employee_id": "nobody"}).status_code == 400
