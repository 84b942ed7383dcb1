from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import FrozenSet, Optional, Tuple

from ..core.constants import DEFAULT_WEEKLY_OFF_DAYS
from ..core.enums import Role

CAPPED_BUCKETS = ("paid", "casual", "sick")


@dataclass(frozen=True)
class LeaveBuckets:
    """Per-type amounts, in days.

    The same shape serves usage counters, derived balances and the
    allocations recorded on leaves and penalties.
    """

    paid: float = 0.0
    casual: float = 0.0
    sick: float = 0.0
    unpaid: float = 0.0

    def get(self, bucket: str) -> float:
        return float(getattr(self, bucket))

    def with_value(self, bucket: str, value: float) -> "LeaveBuckets":
        return replace(self, **{bucket: float(value)})

    @property
    def typed_total(self) -> float:
        """Days that count against the shared pool (everything but unpaid)."""
        return self.paid + self.casual + self.sick

    @property
    def total(self) -> float:
        return self.typed_total + self.unpaid

    def as_dict(self) -> dict:
        return {"paid": self.paid, "casual": self.casual, "sick": self.sick, "unpaid": self.unpaid}


@dataclass(frozen=True)
class LeavePolicy:
    total_annual: float = 0.0
    rate_per_month: float = 0.0
    type_caps: LeaveBuckets = field(default_factory=LeaveBuckets)


@dataclass(frozen=True)
class Company:
    company_id: int
    name: str
    leave_policy: LeavePolicy = field(default_factory=LeavePolicy)
    bank_holidays: FrozenSet[date] = frozenset()
    weekly_off_days: Tuple[int, ...] = DEFAULT_WEEKLY_OFF_DAYS

    def is_working_day(self, day: date) -> bool:
        return day.weekday() not in self.weekly_off_days and day not in self.bank_holidays


@dataclass(frozen=True)
class Employee:
    """Employee record; the engine only ever writes the balance fields."""

    employee_id: int
    name: str
    company_id: Optional[int]
    role: Role = Role.EMPLOYEE
    is_active: bool = True
    joining_date: Optional[date] = None
    total_leave_available: float = 0.0
    leave_usage: LeaveBuckets = field(default_factory=LeaveBuckets)
    leave_balances: LeaveBuckets = field(default_factory=LeaveBuckets)
    last_accrued_ym: Optional[str] = None
    version: int = 0


@dataclass(frozen=True)
class BalanceChange:
    """New balance fields for one employee, valid only against ``expected_version``."""

    employee_id: int
    expected_version: int
    total_leave_available: float
    leave_usage: LeaveBuckets
    leave_balances: LeaveBuckets
    last_accrued_ym: Optional[str] = None
