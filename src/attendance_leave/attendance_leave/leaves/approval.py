from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from ..balances.math import ConsumptionPlan, chargeable_days
from ..balances.service import BalanceService
from ..common.datetime_utils import now_local
from ..core.enums import LeaveStatus
from ..core.exceptions import AlreadyRecordedError, NotFoundError, ValidationError
from ..employees.model import BalanceChange, LeaveBuckets
from .model import Leave
from .repository import LeaveLedger, LeaveRepository

logger = logging.getLogger(__name__)


class LeaveApprovalService:
    """Approve or reject manually requested leave.

    Approval debits balances through the same BalanceService as the
    auto-leave job, and the debit commits together with the decision.
    """

    def __init__(self, leaves: LeaveRepository, ledger: LeaveLedger, balances: BalanceService):
        self._leaves = leaves
        self._ledger = ledger
        self._balances = balances

    def _require_pending(self, leave_id: int) -> Leave:
        leave = self._leaves.get_by_id(int(leave_id))
        if leave is None:
            raise NotFoundError("Leave not found")
        if leave.status != LeaveStatus.PENDING:
            raise ValidationError("Leave already decided")
        return leave

    def approve(
        self,
        leave_id: int,
        *,
        approver_id: int,
        message: Optional[str] = None,
        as_of: Optional[date] = None,
    ) -> Leave:
        """Approve a pending leave and debit its working days.

        Accrual runs up to ``as_of`` (default: today), not the leave's start,
        so a future-dated leave never pulls a later month's credit forward.
        """
        leave = self._require_pending(leave_id)
        cache = self._balances.new_company_cache()
        company = cache.require(leave.company_id)
        admin_message = (message or "").strip() or None

        days = chargeable_days(leave.start_date, leave.end_date, company)
        if days <= 0:
            decided = self._leaves.decide(
                leave_id=leave.leave_id,
                status=LeaveStatus.APPROVED,
                approver_id=int(approver_id),
                allocations=LeaveBuckets(),
                fallback_type=None,
                admin_message=admin_message,
            )
            if not decided:
                raise ValidationError("Leave already decided")
            return self._leaves.get_by_id(leave.leave_id)

        def write(change: BalanceChange, plan: ConsumptionPlan) -> bool:
            return self._ledger.decide_leave(
                change=change,
                leave_id=leave.leave_id,
                status=LeaveStatus.APPROVED,
                approver_id=int(approver_id),
                allocations=plan.allocations,
                fallback_type=plan.fallback_type,
                admin_message=admin_message,
            )

        try:
            _, plan = self._balances.consume(
                leave.employee_id,
                leave.type,
                days,
                fallback_type=leave.fallback_type,
                company_cache=cache,
                as_of=as_of or now_local().date(),
                write=write,
            )
        except AlreadyRecordedError:
            raise ValidationError("Leave already decided")

        logger.info(
            "leave approved leave=%s employee=%s days=%s allocations=%s",
            leave.leave_id,
            leave.employee_id,
            days,
            plan.allocations.as_dict(),
        )
        return self._leaves.get_by_id(leave.leave_id)

    def reject(self, leave_id: int, *, approver_id: int, message: Optional[str] = None) -> Leave:
        leave = self._require_pending(leave_id)
        decided = self._leaves.decide(
            leave_id=leave.leave_id,
            status=LeaveStatus.REJECTED,
            approver_id=int(approver_id),
            allocations=LeaveBuckets(),
            fallback_type=leave.fallback_type,
            admin_message=(message or "").strip() or None,
        )
        if not decided:
            raise ValidationError("Leave already decided")
        return self._leaves.get_by_id(leave.leave_id)
