from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Callable, Dict, Optional, Tuple, TypeVar

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_BALANCE_RETRIES
from ..core.enums import LeaveType
from ..core.exceptions import ConcurrentUpdateError, NotFoundError
from ..employees.model import BalanceChange, Company, Employee, LeaveBuckets
from ..employees.repository import CompanyRepository, EmployeeRepository
from .math import ConsumptionPlan, accrue_pool, apply_consumption, apply_refund, derive_balances, plan_consumption

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Commits a BalanceChange, possibly together with other records; False on a version conflict.
BalanceWriter = Callable[[BalanceChange, T], bool]


class CompanyPolicyCache:
    """Company lookups memoised for the lifetime of one batch run.

    Build a fresh instance per invocation; never keep one around between runs.
    """

    def __init__(self, companies: CompanyRepository):
        self._companies = companies
        self._by_id: Dict[int, Optional[Company]] = {}

    def get(self, company_id: Optional[int]) -> Optional[Company]:
        if company_id is None:
            return None
        key = int(company_id)
        if key not in self._by_id:
            self._by_id[key] = self._companies.get_by_id(key)
        return self._by_id[key]

    def require(self, company_id: Optional[int]) -> Company:
        company = self.get(company_id)
        if company is None:
            raise NotFoundError(f"Company {company_id} not found")
        return company


class BalanceService:
    """Single entry point for every write to an employee's leave balances.

    Each mutation re-reads the employee, computes the new values from that
    snapshot and commits them with a version check. A lost race re-reads and
    recomputes, so two writers on one employee never overwrite each other.
    """

    def __init__(
        self,
        employees: EmployeeRepository,
        companies: CompanyRepository,
        *,
        max_retries: int = DEFAULT_BALANCE_RETRIES,
    ):
        self._employees = employees
        self._companies = companies
        self._max_retries = max(1, int(max_retries))

    def new_company_cache(self) -> CompanyPolicyCache:
        return CompanyPolicyCache(self._companies)

    def _default_write(self, change: BalanceChange, _result) -> bool:
        return self._employees.update_balances(change)

    def _mutate(
        self,
        employee_id: int,
        compute: Callable[[Employee], Tuple[Employee, T]],
        write: Optional[BalanceWriter] = None,
    ) -> Tuple[Employee, T]:
        write = write or self._default_write
        for attempt in range(1, self._max_retries + 1):
            current = self._employees.get_by_id(int(employee_id))
            if current is None:
                raise NotFoundError(f"Employee {employee_id} not found")

            updated, result = compute(current)
            change = BalanceChange(
                employee_id=current.employee_id,
                expected_version=current.version,
                total_leave_available=updated.total_leave_available,
                leave_usage=updated.leave_usage,
                leave_balances=updated.leave_balances,
                last_accrued_ym=updated.last_accrued_ym,
            )
            if write(change, result):
                return replace(updated, version=current.version + 1), result
            logger.info("balance write conflict for employee=%s (attempt %s)", employee_id, attempt)

        raise ConcurrentUpdateError(f"Balances of employee {employee_id} changed {self._max_retries} times in a row")

    @staticmethod
    def _accrued(employee: Employee, company: Company, as_of: date) -> Employee:
        pool, cursor = accrue_pool(
            employee.total_leave_available,
            employee.leave_usage,
            company.leave_policy,
            employee.last_accrued_ym,
            as_of,
            joining_date=employee.joining_date,
        )
        return replace(employee, total_leave_available=pool, last_accrued_ym=cursor)

    def accrue(
        self,
        employee_id: int,
        as_of: Optional[date] = None,
        *,
        company_cache: Optional[CompanyPolicyCache] = None,
    ) -> Employee:
        as_of = as_of or now_local().date()
        cache = company_cache or self.new_company_cache()

        def compute(emp: Employee):
            company = cache.require(emp.company_id)
            accrued = self._accrued(emp, company, as_of)
            caps = company.leave_policy.type_caps
            return replace(accrued, leave_balances=derive_balances(caps, accrued.leave_usage)), None

        employee, _ = self._mutate(employee_id, compute)
        return employee

    def consume(
        self,
        employee_id: int,
        requested_type: LeaveType,
        days: float,
        *,
        fallback_type: Optional[LeaveType] = None,
        company_cache: Optional[CompanyPolicyCache] = None,
        as_of: Optional[date] = None,
        write: Optional[BalanceWriter] = None,
    ) -> Tuple[Employee, ConsumptionPlan]:
        """Accrue, plan against the fresh snapshot and debit in one write.

        ``write`` receives the change and the plan and may store other records
        in the same transaction; returning False re-reads and plans again.
        """
        as_of = as_of or now_local().date()
        cache = company_cache or self.new_company_cache()

        def compute(emp: Employee):
            company = cache.require(emp.company_id)
            caps = company.leave_policy.type_caps
            accrued = self._accrued(emp, company, as_of)
            plan = plan_consumption(
                requested_type,
                days,
                caps,
                accrued.leave_usage,
                accrued.total_leave_available,
                fallback_type=fallback_type,
            )
            usage, pool = apply_consumption(accrued.leave_usage, accrued.total_leave_available, plan.allocations)
            updated = replace(
                accrued,
                leave_usage=usage,
                total_leave_available=pool,
                leave_balances=derive_balances(caps, usage),
            )
            return updated, plan

        employee, plan = self._mutate(employee_id, compute, write)
        logger.info(
            "debited employee=%s type=%s days=%s allocations=%s pool_after=%s",
            employee_id,
            requested_type.value,
            days,
            plan.allocations.as_dict(),
            employee.total_leave_available,
        )
        return employee, plan

    def refund(
        self,
        employee_id: int,
        allocations: LeaveBuckets,
        *,
        company_cache: Optional[CompanyPolicyCache] = None,
        write: Optional[BalanceWriter] = None,
    ) -> Employee:
        cache = company_cache or self.new_company_cache()

        def compute(emp: Employee):
            company = cache.get(emp.company_id)
            caps = company.leave_policy.type_caps if company else LeaveBuckets()
            usage, pool = apply_refund(emp.leave_usage, emp.total_leave_available, allocations)
            updated = replace(
                emp,
                leave_usage=usage,
                total_leave_available=pool,
                leave_balances=derive_balances(caps, usage),
            )
            return updated, None

        employee, _ = self._mutate(employee_id, compute, write)
        logger.info(
            "refunded employee=%s allocations=%s pool_after=%s",
            employee_id,
            allocations.as_dict(),
            employee.total_leave_available,
        )
        return employee
