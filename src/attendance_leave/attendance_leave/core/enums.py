from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Primary role of an employee record."""

    SUPERADMIN = "SUPERADMIN"
    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"


class LeaveType(str, Enum):
    PAID = "PAID"
    CASUAL = "CASUAL"
    SICK = "SICK"
    UNPAID = "UNPAID"

    @property
    def bucket(self) -> str:
        """Name of the matching field on LeaveBuckets."""
        return self.value.lower()

    @property
    def is_capped(self) -> bool:
        return self is not LeaveType.UNPAID


class LeaveStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class IssueReason(str, Enum):
    """Why a day was flagged as lacking valid attendance."""

    NO_RECORD = "NO_RECORD"
    NO_PUNCH_IN = "NO_PUNCH_IN"


class PunchOutMode(str, Enum):
    """Which open sessions the auto punch-out job closes."""

    YESTERDAY = "yesterday"
    STALE = "stale"
