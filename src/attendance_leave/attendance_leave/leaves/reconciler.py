from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from ..balances.service import BalanceService, CompanyPolicyCache
from ..common.capabilities import reveal
from ..common.datetime_utils import now_local, start_of_day
from ..core.exceptions import AlreadyRecordedError, NotFoundError, ValidationError
from ..employees.model import BalanceChange, Employee
from ..employees.repository import EmployeeRepository
from .model import AttendancePenalty
from .repository import LeaveLedger, LeaveRepository, PenaltyRepository

logger = logging.getLogger(__name__)

ALL_EMPLOYEES = "all"


@dataclass
class ReconcileSummary:
    employees_checked: int = 0
    leaves_deleted: int = 0
    penalties_resolved: int = 0
    failures: int = 0

    def merge(self, other: "ReconcileSummary") -> None:
        self.employees_checked += other.employees_checked
        self.leaves_deleted += other.leaves_deleted
        self.penalties_resolved += other.penalties_resolved
        self.failures += other.failures


class BackdatingReconciler:
    """Reverses auto-leave consumption dated before an employee's joining date.

    For each employee: auto-generated (or penalty-linked) leaves starting
    before employment are deleted, and every unresolved penalty dated before
    employment is resolved and its exact allocations refunded in the same
    transaction. The two steps do not depend on each other, so re-running
    converges to the same state.
    """

    def __init__(
        self,
        employees: EmployeeRepository,
        leaves: LeaveRepository,
        penalties: PenaltyRepository,
        ledger: LeaveLedger,
        balances: BalanceService,
    ):
        self._employees = employees
        self._leaves = leaves
        self._penalties = penalties
        self._ledger = ledger
        self._balances = balances

    def reconcile(
        self,
        target: Union[int, str],
        *,
        actor_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ReconcileSummary:
        now = now or now_local()
        cache = self._balances.new_company_cache()

        if isinstance(target, str) and target.strip().lower() == ALL_EMPLOYEES:
            return self._reconcile_all(actor_id=actor_id, now=now, cache=cache)

        try:
            employee_id = int(target)
        except (TypeError, ValueError):
            raise ValidationError(f"Expected an employee id or '{ALL_EMPLOYEES}', got {target!r}")

        employee = self._employees.get_by_id(employee_id)
        if employee is None:
            raise NotFoundError(f"Employee {employee_id} not found")
        return self.reconcile_employee(reveal(employee), actor_id=actor_id, now=now, company_cache=cache)

    def _reconcile_all(self, *, actor_id: Optional[int], now: datetime, cache: CompanyPolicyCache) -> ReconcileSummary:
        employees = [reveal(e) for e in self._employees.list_with_joining_date()]
        logger.info("[reconcile] loaded %s employees with company and joining date", len(employees))

        total = ReconcileSummary()
        for employee in employees:
            try:
                total.merge(self.reconcile_employee(employee, actor_id=actor_id, now=now, company_cache=cache))
            except Exception:
                total.employees_checked += 1
                total.failures += 1
                logger.exception("[reconcile] employee=%s failed", employee.employee_id)

        logger.info(
            "[reconcile] completed for %s employees, auto leaves removed: %s, penalties resolved: %s, failures: %s",
            total.employees_checked,
            total.leaves_deleted,
            total.penalties_resolved,
            total.failures,
        )
        return total

    def reconcile_employee(
        self,
        employee: Employee,
        *,
        actor_id: Optional[int] = None,
        now: Optional[datetime] = None,
        company_cache: Optional[CompanyPolicyCache] = None,
    ) -> ReconcileSummary:
        summary = ReconcileSummary(employees_checked=1)
        if employee.joining_date is None:
            logger.info("[reconcile] skip employee=%s (no employment start)", employee.employee_id)
            return summary

        now = now or now_local()
        cache = company_cache or self._balances.new_company_cache()
        employment_start = start_of_day(employee.joining_date).date()

        summary.leaves_deleted = self._leaves.delete_auto_before(
            employee_id=employee.employee_id, before=employment_start
        )

        resolved_by = int(actor_id if actor_id is not None else employee.employee_id)
        for penalty in self._penalties.list_unresolved_before(employee_id=employee.employee_id, before=employment_start):
            if self._refund_penalty(employee, penalty, resolved_at=now, resolved_by=resolved_by, cache=cache):
                summary.penalties_resolved += 1

        if summary.leaves_deleted or summary.penalties_resolved:
            logger.info(
                "[reconcile] employee=%s (joining=%s): removed leaves=%s, penalties resolved=%s",
                employee.employee_id,
                employment_start.isoformat(),
                summary.leaves_deleted,
                summary.penalties_resolved,
            )
        else:
            logger.debug("[reconcile] employee=%s: nothing to remove", employee.employee_id)
        return summary

    def _refund_penalty(
        self,
        employee: Employee,
        penalty: AttendancePenalty,
        *,
        resolved_at: datetime,
        resolved_by: int,
        cache: CompanyPolicyCache,
    ) -> bool:
        def write(change: BalanceChange, _result) -> bool:
            return self._ledger.resolve_penalty(
                change=change,
                penalty_id=penalty.penalty_id,
                resolved_at=resolved_at,
                resolved_by=resolved_by,
            )

        try:
            self._balances.refund(employee.employee_id, penalty.allocations, company_cache=cache, write=write)
        except AlreadyRecordedError:
            # Resolved by someone else since it was listed; their refund stands.
            return False
        return True
