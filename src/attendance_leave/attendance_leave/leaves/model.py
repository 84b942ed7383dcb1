from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import IssueReason, LeaveStatus, LeaveType
from ..employees.model import LeaveBuckets


@dataclass(frozen=True)
class Leave:
    leave_id: int
    employee_id: int
    company_id: int
    type: LeaveType
    start_date: date
    end_date: date
    status: LeaveStatus = LeaveStatus.PENDING
    fallback_type: Optional[LeaveType] = None
    is_auto: bool = False
    auto_penalty_id: Optional[int] = None
    allocations: LeaveBuckets = field(default_factory=LeaveBuckets)
    reason: Optional[str] = None
    approver_id: Optional[int] = None
    admin_message: Optional[str] = None

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    @property
    def is_auto_generated(self) -> bool:
        return self.is_auto or self.auto_penalty_id is not None


@dataclass(frozen=True)
class AttendancePenalty:
    """Exactly what one deficient day debited; refundable once."""

    penalty_id: int
    employee_id: int
    company_id: int
    date: date
    allocations: LeaveBuckets = field(default_factory=LeaveBuckets)
    units: float = 1.0
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[int] = None

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None


@dataclass(frozen=True)
class AttendanceIssue:
    employee_id: int
    date: date
    reason: IssueReason
