from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence, Tuple

from ..core.enums import LeaveStatus, LeaveType
from ..employees.model import BalanceChange, LeaveBuckets
from .model import AttendancePenalty, Leave


class LeaveRepository(Protocol):
    def get_by_id(self, leave_id: int) -> Optional[Leave]:
        raise NotImplementedError

    def list_overlapping(self, *, employee_id: int, start: date, end_exclusive: date) -> Sequence[Leave]:
        """Leaves of any status whose [start_date, end_date] touches the window."""

        raise NotImplementedError

    def decide(
        self,
        *,
        leave_id: int,
        status: LeaveStatus,
        approver_id: int,
        allocations: LeaveBuckets,
        fallback_type: Optional[LeaveType],
        admin_message: Optional[str] = None,
    ) -> bool:
        """Move a PENDING leave to ``status``; False if it was not pending."""

        raise NotImplementedError

    def delete_auto_before(self, *, employee_id: int, before: date) -> int:
        """Delete auto-generated or penalty-linked leaves starting before ``before``.

        Returns how many rows were removed. Manual leaves are never touched.
        """

        raise NotImplementedError


class PenaltyRepository(Protocol):
    def list_for_range(self, *, employee_id: int, start: date, end_exclusive: date) -> Sequence[AttendancePenalty]:
        """Penalties of any resolution state dated inside the window."""

        raise NotImplementedError

    def list_unresolved_before(self, *, employee_id: int, before: date) -> Sequence[AttendancePenalty]:
        raise NotImplementedError


class LeaveLedger(Protocol):
    """Writes that must land together with a balance change, or not at all.

    Each method commits the versioned balance update and its records in one
    transaction. A version conflict rolls everything back and returns a falsy
    value so the caller can re-read and retry. A record that is already there
    raises AlreadyRecordedError and nothing is written.
    """

    def record_auto_leave(
        self,
        *,
        change: BalanceChange,
        company_id: int,
        date: date,
        leave_type: LeaveType,
        fallback_type: Optional[LeaveType],
        allocations: LeaveBuckets,
        reason: Optional[str] = None,
    ) -> Optional[Tuple[AttendancePenalty, Leave]]:
        """Debit, penalty and approved auto leave for one day."""

        raise NotImplementedError

    def resolve_penalty(self, *, change: BalanceChange, penalty_id: int, resolved_at: datetime, resolved_by: int) -> bool:
        """Resolve an unresolved penalty and refund it."""

        raise NotImplementedError

    def decide_leave(
        self,
        *,
        change: BalanceChange,
        leave_id: int,
        status: LeaveStatus,
        approver_id: int,
        allocations: LeaveBuckets,
        fallback_type: Optional[LeaveType],
        admin_message: Optional[str] = None,
    ) -> bool:
        """Move a PENDING leave to ``status`` and debit its allocations."""

        raise NotImplementedError
