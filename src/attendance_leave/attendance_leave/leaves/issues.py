from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from ..attendance.repository import AttendanceRepository
from ..balances.service import CompanyPolicyCache
from ..common.capabilities import reveal
from ..common.datetime_utils import iter_days
from ..common.validators import require_window
from ..core.enums import IssueReason, LeaveStatus
from ..core.exceptions import NotFoundError
from ..employees.model import Employee
from ..employees.repository import CompanyRepository, EmployeeRepository
from .model import AttendanceIssue
from .repository import LeaveRepository, PenaltyRepository

logger = logging.getLogger(__name__)


class AttendanceIssueDetector:
    """Finds days in a window on which an employee has no valid attendance.

    A day is an issue when it has no attendance record, or its record never
    got a first punch-in. Days already accounted for by a leave (pending or
    approved, manual or automatic) or by a penalty are never reported, so
    overlapping runs cannot flag the same day twice. Days before the
    employee's joining date and company non-working days are not issues.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        leaves: LeaveRepository,
        penalties: PenaltyRepository,
        employees: EmployeeRepository,
        companies: CompanyRepository,
    ):
        self._attendance = attendance
        self._leaves = leaves
        self._penalties = penalties
        self._employees = employees
        self._companies = companies

    def collect_issues(
        self,
        employee_id: int,
        window_start: date,
        window_end_exclusive: date,
        *,
        employee: Optional[Employee] = None,
        company_cache: Optional[CompanyPolicyCache] = None,
    ) -> List[AttendanceIssue]:
        require_window(window_start, window_end_exclusive)

        if employee is None:
            employee = self._employees.get_by_id(int(employee_id))
            if employee is None:
                raise NotFoundError(f"Employee {employee_id} not found")
            employee = reveal(employee)

        cache = company_cache or CompanyPolicyCache(self._companies)
        company = cache.get(employee.company_id)

        start = window_start
        if employee.joining_date and employee.joining_date > start:
            start = employee.joining_date
        if start >= window_end_exclusive:
            return []

        records = {
            r.work_date: r
            for r in self._attendance.list_for_employee_range(int(employee_id), start, window_end_exclusive)
        }
        leaves = [
            leave
            for leave in self._leaves.list_overlapping(
                employee_id=int(employee_id), start=start, end_exclusive=window_end_exclusive
            )
            if leave.status != LeaveStatus.REJECTED
        ]
        penalised = {
            p.date
            for p in self._penalties.list_for_range(
                employee_id=int(employee_id), start=start, end_exclusive=window_end_exclusive
            )
        }

        issues: List[AttendanceIssue] = []
        for day in iter_days(start, window_end_exclusive):
            if company is not None and not company.is_working_day(day):
                continue
            if day in penalised or any(leave.covers(day) for leave in leaves):
                continue

            record = records.get(day)
            if record is None:
                issues.append(AttendanceIssue(employee_id=int(employee_id), date=day, reason=IssueReason.NO_RECORD))
            elif not record.has_valid_punch_in:
                issues.append(AttendanceIssue(employee_id=int(employee_id), date=day, reason=IssueReason.NO_PUNCH_IN))

        logger.debug(
            "issues employee=%s window=%s..%s found=%s",
            employee_id,
            start.isoformat(),
            window_end_exclusive.isoformat(),
            len(issues),
        )
        return issues
