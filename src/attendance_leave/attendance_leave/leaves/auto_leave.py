from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Tuple

from ..balances.math import ConsumptionPlan
from ..balances.service import BalanceService, CompanyPolicyCache
from ..common.capabilities import reveal
from ..common.datetime_utils import now_local, start_of_day
from ..common.validators import require_leave_type, require_positive_int
from ..core.constants import DEFAULT_AUTO_LEAVE_LOOKBACK_DAYS
from ..core.enums import LeaveType
from ..core.exceptions import AlreadyRecordedError
from ..employees.model import BalanceChange, Employee
from ..employees.repository import EmployeeRepository
from .issues import AttendanceIssueDetector
from .model import AttendanceIssue
from .repository import LeaveLedger

logger = logging.getLogger(__name__)

AUTO_LEAVE_REASON = "Auto leave: no attendance recorded"


@dataclass(frozen=True)
class AutoLeaveOptions:
    lookback_days: Optional[int] = None
    now: Optional[datetime] = None
    leave_type: Optional[LeaveType] = None


@dataclass(frozen=True)
class AutoLeaveNotice:
    """An employee was charged auto-leave; delivering the news is the host's job."""

    employee_id: int
    dates: Tuple[date, ...]


@dataclass
class AutoLeaveRunSummary:
    window_start: date
    window_end_exclusive: date
    employees: int = 0
    leaves_created: int = 0
    failures: int = 0
    notices: List[AutoLeaveNotice] = field(default_factory=list)


class AutoLeaveGenerator:
    """Turns attendance issues into auto-leave + penalty pairs."""

    def __init__(
        self,
        employees: EmployeeRepository,
        ledger: LeaveLedger,
        detector: AttendanceIssueDetector,
        balances: BalanceService,
        *,
        lookback_days: int = DEFAULT_AUTO_LEAVE_LOOKBACK_DAYS,
        leave_type: LeaveType = LeaveType.PAID,
        notify: Optional[Callable[[AutoLeaveNotice], None]] = None,
    ):
        self._employees = employees
        self._ledger = ledger
        self._detector = detector
        self._balances = balances
        self._lookback_days = require_positive_int(lookback_days, "lookback_days")
        self._leave_type = require_leave_type(leave_type)
        self._notify = notify

    def run(self, options: Optional[AutoLeaveOptions] = None) -> AutoLeaveRunSummary:
        options = options or AutoLeaveOptions()
        lookback = self._lookback_days
        if options.lookback_days is not None:
            lookback = require_positive_int(options.lookback_days, "lookback_days")
        leave_type = require_leave_type(options.leave_type) if options.leave_type else self._leave_type

        now = options.now or now_local()
        today = start_of_day(now).date()
        window_start = today - timedelta(days=lookback)
        summary = AutoLeaveRunSummary(window_start=window_start, window_end_exclusive=today)

        employees = [reveal(e) for e in self._employees.list_for_auto_leave()]
        if not employees:
            logger.info("[auto-leave] no employees found")
            return summary

        logger.info(
            "[auto-leave] running for %s employees (lookback %s days from %s to %s)",
            len(employees),
            lookback,
            window_start.isoformat(),
            today.isoformat(),
        )

        cache = self._balances.new_company_cache()
        for employee in employees:
            summary.employees += 1
            dates: List[date] = []
            try:
                self._process_employee(employee, window_start, today, leave_type, cache, as_of=today, charged=dates)
            except Exception:
                summary.failures += 1
                logger.exception("[auto-leave] employee=%s failed", employee.employee_id)

            if dates:
                summary.leaves_created += len(dates)
                notice = AutoLeaveNotice(employee_id=employee.employee_id, dates=tuple(dates))
                summary.notices.append(notice)
                self._send_notice(notice)

        logger.info(
            "[auto-leave] done employees=%s leaves=%s failures=%s",
            summary.employees,
            summary.leaves_created,
            summary.failures,
        )
        return summary

    def _send_notice(self, notice: AutoLeaveNotice) -> None:
        if self._notify is None:
            return
        try:
            self._notify(notice)
        except Exception:
            logger.exception("[auto-leave] notify failed employee=%s", notice.employee_id)

    def _process_employee(
        self,
        employee: Employee,
        window_start: date,
        window_end_exclusive: date,
        leave_type: LeaveType,
        cache: CompanyPolicyCache,
        *,
        as_of: date,
        charged: List[date],
    ) -> None:
        issues = self._detector.collect_issues(
            employee.employee_id,
            window_start,
            window_end_exclusive,
            employee=employee,
            company_cache=cache,
        )
        for issue in issues:
            if self._charge(employee, issue, leave_type, cache, as_of=as_of):
                charged.append(issue.date)

    def _charge(
        self,
        employee: Employee,
        issue: AttendanceIssue,
        leave_type: LeaveType,
        cache: CompanyPolicyCache,
        *,
        as_of: date,
    ) -> bool:
        """Debit one day and store its penalty and leave in one transaction.

        Returns False when the day turns out to be charged already.
        """
        recorded = {}

        def write(change: BalanceChange, plan: ConsumptionPlan) -> bool:
            result = self._ledger.record_auto_leave(
                change=change,
                company_id=int(employee.company_id),
                date=issue.date,
                leave_type=plan.primary_type,
                fallback_type=plan.fallback_type,
                allocations=plan.allocations,
                reason=AUTO_LEAVE_REASON,
            )
            if result is None:
                return False
            recorded["penalty"], recorded["leave"] = result
            return True

        try:
            _, plan = self._balances.consume(
                employee.employee_id, leave_type, 1, company_cache=cache, as_of=as_of, write=write
            )
        except AlreadyRecordedError:
            logger.info(
                "[auto-leave] employee=%s date=%s already charged, skipping",
                employee.employee_id,
                issue.date.isoformat(),
            )
            return False

        logger.info(
            "[auto-leave] employee=%s date=%s reason=%s leave=%s penalty=%s allocations=%s",
            employee.employee_id,
            issue.date.isoformat(),
            issue.reason.value,
            recorded["leave"].leave_id,
            recorded["penalty"].penalty_id,
            plan.allocations.as_dict(),
        )
        return True
