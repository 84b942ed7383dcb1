"""Pure leave-balance arithmetic.

Nothing here touches storage. Every function takes a snapshot and returns a
new value, so the same inputs always produce the same split.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from ..common.datetime_utils import months_between, year_month
from ..core.enums import LeaveType
from ..core.exceptions import ValidationError
from ..employees.model import CAPPED_BUCKETS, Company, LeaveBuckets, LeavePolicy

logger = logging.getLogger(__name__)

# Fixed cascade used when a request does not name its own fallback.
FALLBACK_ORDER = (LeaveType.PAID, LeaveType.CASUAL, LeaveType.SICK)


@dataclass(frozen=True)
class ConsumptionPlan:
    allocations: LeaveBuckets
    primary_type: LeaveType
    fallback_type: Optional[LeaveType] = None

    @property
    def pool_debit(self) -> float:
        return self.allocations.typed_total


def derive_balances(caps: LeaveBuckets, usage: LeaveBuckets) -> LeaveBuckets:
    """Remaining allowance per capped type; unpaid reports usage (uncapped)."""
    return LeaveBuckets(
        paid=max(0.0, caps.paid - usage.paid),
        casual=max(0.0, caps.casual - usage.casual),
        sick=max(0.0, caps.sick - usage.sick),
        unpaid=usage.unpaid,
    )


def _charge_order(requested: LeaveType, fallback: Optional[LeaveType]) -> Tuple[LeaveType, ...]:
    if fallback is not None:
        if fallback == requested:
            return (requested,)
        return (requested, fallback)
    return (requested,) + tuple(t for t in FALLBACK_ORDER if t != requested)


def plan_consumption(
    requested_type: LeaveType,
    days: float,
    caps: LeaveBuckets,
    usage: LeaveBuckets,
    pool: float,
    *,
    fallback_type: Optional[LeaveType] = None,
) -> ConsumptionPlan:
    """Split ``days`` across leave types.

    The requested type is charged first, up to its remaining cap and the
    remaining pool. Any shortfall goes to ``fallback_type`` when one is given,
    otherwise through paid -> casual -> sick; whatever is still left is unpaid.
    Typed days also debit the pool, so their sum never exceeds ``pool``.
    """
    days = float(days)
    if days <= 0:
        raise ValidationError("Leave duration must be positive")

    allocations = LeaveBuckets()
    if requested_type is LeaveType.UNPAID:
        return ConsumptionPlan(allocations=allocations.with_value("unpaid", days), primary_type=requested_type)

    remaining = days
    pool_left = max(0.0, float(pool))
    charged_fallback: Optional[LeaveType] = None

    for leave_type in _charge_order(requested_type, fallback_type):
        if remaining <= 0:
            break
        if not leave_type.is_capped:
            # Explicit UNPAID fallback: the rest is unpaid below.
            charged_fallback = charged_fallback or leave_type
            break
        bucket = leave_type.bucket
        cap_left = max(0.0, caps.get(bucket) - usage.get(bucket))
        take = max(0.0, min(remaining, cap_left, pool_left))
        if take <= 0:
            continue
        allocations = allocations.with_value(bucket, allocations.get(bucket) + take)
        remaining -= take
        pool_left -= take
        if leave_type != requested_type and charged_fallback is None:
            charged_fallback = leave_type

    if remaining > 0:
        allocations = allocations.with_value("unpaid", allocations.unpaid + remaining)
        if charged_fallback is None:
            charged_fallback = LeaveType.UNPAID

    return ConsumptionPlan(allocations=allocations, primary_type=requested_type, fallback_type=charged_fallback)


def _floor_at_zero(value: float, what: str) -> float:
    if value < 0:
        logger.warning("consistency violation: %s would be %.2f, clamped to 0", what, value)
        return 0.0
    return value


def apply_consumption(usage: LeaveBuckets, pool: float, allocations: LeaveBuckets) -> Tuple[LeaveBuckets, float]:
    """Add ``allocations`` to usage and debit their typed part from the pool."""
    new_usage = LeaveBuckets(
        paid=usage.paid + allocations.paid,
        casual=usage.casual + allocations.casual,
        sick=usage.sick + allocations.sick,
        unpaid=usage.unpaid + allocations.unpaid,
    )
    new_pool = _floor_at_zero(float(pool) - allocations.typed_total, "pool")
    return new_usage, new_pool


def apply_refund(usage: LeaveBuckets, pool: float, allocations: LeaveBuckets) -> Tuple[LeaveBuckets, float]:
    """Exact inverse of apply_consumption for the same allocations."""
    new_pool = max(0.0, float(pool)) + allocations.typed_total
    values = {}
    for bucket in CAPPED_BUCKETS + ("unpaid",):
        values[bucket] = _floor_at_zero(usage.get(bucket) - allocations.get(bucket), f"usage.{bucket}")
    return LeaveBuckets(**values), new_pool


def accrue_pool(
    pool: float,
    usage: LeaveBuckets,
    policy: LeavePolicy,
    last_ym: Optional[str],
    as_of: date,
    *,
    joining_date: Optional[date] = None,
) -> Tuple[float, Optional[str]]:
    """Monthly accrual into the pool.

    Adds ``rate_per_month`` per elapsed month, never letting pool plus typed
    usage exceed ``total_annual``. Returns the new pool and accrual cursor.
    """
    rate = float(policy.rate_per_month or 0)
    annual = float(policy.total_annual or 0)
    if rate <= 0 or annual <= 0:
        return pool, last_ym

    as_of_ym = year_month(as_of)
    start_ym = last_ym or (year_month(joining_date) if joining_date else as_of_ym)
    elapsed = months_between(start_ym, as_of_ym)
    if elapsed <= 0:
        return pool, start_ym

    current = max(0.0, float(pool))
    headroom = max(0.0, annual - usage.typed_total - current)
    added = max(0.0, min(rate * elapsed, headroom))
    return current + added, as_of_ym


def chargeable_days(start: date, end: date, company: Optional[Company]) -> int:
    """Working days in the inclusive range ``[start, end]``."""
    if end < start:
        raise ValidationError("Leave end date must not be before its start date")
    count = 0
    day = start
    while day <= end:
        if company is None or company.is_working_day(day):
            count += 1
        day = date.fromordinal(day.toordinal() + 1)
    return count
