from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .attendance.auto_punch_out import AutoPunchOutJob
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceLedgerService
from .balances.service import BalanceService
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLCompanyRepository, MySQLEmployeeRepository
from .leaves.approval import LeaveApprovalService
from .leaves.auto_leave import AutoLeaveGenerator
from .leaves.issues import AttendanceIssueDetector
from .leaves.mysql_leave_ledger import MySQLLeaveLedger
from .leaves.mysql_leave_repository import MySQLLeaveRepository, MySQLPenaltyRepository
from .leaves.reconciler import BackdatingReconciler
from .scheduling.settings import EngineSettings


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection
    settings: EngineSettings

    employees_repo: MySQLEmployeeRepository
    companies_repo: MySQLCompanyRepository
    attendance_repo: MySQLAttendanceRepository
    leaves_repo: MySQLLeaveRepository
    penalties_repo: MySQLPenaltyRepository
    leave_ledger: MySQLLeaveLedger

    balance_service: BalanceService
    attendance_service: AttendanceLedgerService
    auto_punch_out_job: AutoPunchOutJob
    issue_detector: AttendanceIssueDetector
    auto_leave_generator: AutoLeaveGenerator
    reconciler: BackdatingReconciler
    leave_approval_service: LeaveApprovalService


def build_container(*, db_config: Mapping[str, Any], settings: Optional[EngineSettings] = None) -> Container:
    settings = settings or EngineSettings()
    conn = DatabaseConnection(DBConfig.from_mapping(db_config))

    employees_repo = MySQLEmployeeRepository(conn)
    companies_repo = MySQLCompanyRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    leaves_repo = MySQLLeaveRepository(conn)
    penalties_repo = MySQLPenaltyRepository(conn)
    leave_ledger = MySQLLeaveLedger(conn)

    balance_service = BalanceService(employees_repo, companies_repo)
    attendance_service = AttendanceLedgerService(attendance_repo, employees_repo)
    auto_punch_out_job = AutoPunchOutJob(
        attendance_repo,
        mode=settings.auto_punch_out_mode,
        day_close_time=settings.auto_punch_out_time,
    )
    issue_detector = AttendanceIssueDetector(attendance_repo, leaves_repo, penalties_repo, employees_repo, companies_repo)
    auto_leave_generator = AutoLeaveGenerator(
        employees_repo,
        leave_ledger,
        issue_detector,
        balance_service,
        lookback_days=settings.auto_leave_lookback_days,
        leave_type=settings.auto_leave_type,
    )
    reconciler = BackdatingReconciler(employees_repo, leaves_repo, penalties_repo, leave_ledger, balance_service)
    leave_approval_service = LeaveApprovalService(leaves_repo, leave_ledger, balance_service)

    return Container(
        conn=conn,
        settings=settings,
        employees_repo=employees_repo,
        companies_repo=companies_repo,
        attendance_repo=attendance_repo,
        leaves_repo=leaves_repo,
        penalties_repo=penalties_repo,
        leave_ledger=leave_ledger,
        balance_service=balance_service,
        attendance_service=attendance_service,
        auto_punch_out_job=auto_punch_out_job,
        issue_detector=issue_detector,
        auto_leave_generator=auto_leave_generator,
        reconciler=reconciler,
        leave_approval_service=leave_approval_service,
    )
