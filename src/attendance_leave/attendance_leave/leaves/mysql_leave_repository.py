from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import LeaveStatus, LeaveType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import buckets_from_row, buckets_params, db_cursor, fetchall, fetchone
from ..employees.model import LeaveBuckets
from .model import AttendancePenalty, Leave
from .repository import LeaveRepository, PenaltyRepository

_LEAVE_COLUMNS = """
    leave_id, employee_id, company_id, leave_type, fallback_type, start_date, end_date, status,
    is_auto, auto_penalty_id, alloc_paid, alloc_casual, alloc_sick, alloc_unpaid,
    reason, approver_id, admin_message
"""

_PENALTY_COLUMNS = """
    penalty_id, employee_id, company_id, penalty_date, units,
    alloc_paid, alloc_casual, alloc_sick, alloc_unpaid, resolved_at, resolved_by
"""


def _to_leave(r: dict) -> Leave:
    return Leave(
        leave_id=int(r["leave_id"]),
        employee_id=int(r["employee_id"]),
        company_id=int(r["company_id"]),
        type=LeaveType(r["leave_type"]),
        fallback_type=LeaveType(r["fallback_type"]) if r.get("fallback_type") else None,
        start_date=r["start_date"],
        end_date=r["end_date"],
        status=LeaveStatus(r["status"]),
        is_auto=bool(r.get("is_auto")),
        auto_penalty_id=int(r["auto_penalty_id"]) if r.get("auto_penalty_id") is not None else None,
        allocations=buckets_from_row(r, "alloc"),
        reason=r.get("reason"),
        approver_id=int(r["approver_id"]) if r.get("approver_id") is not None else None,
        admin_message=r.get("admin_message"),
    )


def _to_penalty(r: dict) -> AttendancePenalty:
    return AttendancePenalty(
        penalty_id=int(r["penalty_id"]),
        employee_id=int(r["employee_id"]),
        company_id=int(r["company_id"]),
        date=r["penalty_date"],
        units=float(r.get("units") or 1),
        allocations=buckets_from_row(r, "alloc"),
        resolved_at=r.get("resolved_at"),
        resolved_by=int(r["resolved_by"]) if r.get("resolved_by") is not None else None,
    )


def insert_leave(
    cur,
    *,
    employee_id: int,
    company_id: int,
    type: LeaveType,
    start_date: date,
    end_date: date,
    status: LeaveStatus,
    fallback_type: Optional[LeaveType] = None,
    is_auto: bool = False,
    auto_penalty_id: Optional[int] = None,
    allocations: Optional[LeaveBuckets] = None,
    reason: Optional[str] = None,
) -> Leave:
    allocations = allocations or LeaveBuckets()
    cur.execute(
        """
        INSERT INTO leaves(
            employee_id, company_id, leave_type, fallback_type, start_date, end_date, status,
            is_auto, auto_penalty_id, alloc_paid, alloc_casual, alloc_sick, alloc_unpaid, reason
        )
        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
        """,
        (
            int(employee_id),
            int(company_id),
            type.value,
            fallback_type.value if fallback_type else None,
            start_date,
            end_date,
            status.value,
            int(is_auto),
            auto_penalty_id,
            *buckets_params(allocations),
            reason,
        ),
    )
    return Leave(
        leave_id=int(cur.lastrowid),
        employee_id=int(employee_id),
        company_id=int(company_id),
        type=type,
        start_date=start_date,
        end_date=end_date,
        status=status,
        fallback_type=fallback_type,
        is_auto=is_auto,
        auto_penalty_id=auto_penalty_id,
        allocations=allocations,
        reason=reason,
    )


def set_leave_decision(
    cur,
    *,
    leave_id: int,
    status: LeaveStatus,
    approver_id: int,
    allocations: LeaveBuckets,
    fallback_type: Optional[LeaveType],
    admin_message: Optional[str] = None,
) -> bool:
    cur.execute(
        """
        UPDATE leaves
        SET status=%s, approver_id=%s, fallback_type=%s, admin_message=%s,
            alloc_paid=%s, alloc_casual=%s, alloc_sick=%s, alloc_unpaid=%s
        WHERE leave_id=%s AND status=%s
        """,
        (
            status.value,
            int(approver_id),
            fallback_type.value if fallback_type else None,
            admin_message,
            *buckets_params(allocations),
            int(leave_id),
            LeaveStatus.PENDING.value,
        ),
    )
    return cur.rowcount > 0


def insert_penalty(
    cur,
    *,
    employee_id: int,
    company_id: int,
    date: date,
    allocations: LeaveBuckets,
    units: float = 1.0,
) -> AttendancePenalty:
    cur.execute(
        """
        INSERT INTO attendance_penalties(
            employee_id, company_id, penalty_date, units,
            alloc_paid, alloc_casual, alloc_sick, alloc_unpaid
        )
        VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
        """,
        (int(employee_id), int(company_id), date, float(units), *buckets_params(allocations)),
    )
    return AttendancePenalty(
        penalty_id=int(cur.lastrowid),
        employee_id=int(employee_id),
        company_id=int(company_id),
        date=date,
        allocations=allocations,
        units=float(units),
    )


def set_penalty_resolved(cur, *, penalty_id: int, resolved_at: datetime, resolved_by: int) -> bool:
    cur.execute(
        """
        UPDATE attendance_penalties
        SET resolved_at=%s, resolved_by=%s
        WHERE penalty_id=%s AND resolved_at IS NULL
        """,
        (resolved_at, int(resolved_by), int(penalty_id)),
    )
    return cur.rowcount > 0


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, leave_id: int) -> Optional[Leave]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_LEAVE_COLUMNS} FROM leaves WHERE leave_id=%s", (int(leave_id),))
            r = fetchone(cur)
            return _to_leave(r) if r else None

    def list_overlapping(self, *, employee_id: int, start: date, end_exclusive: date) -> Sequence[Leave]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_LEAVE_COLUMNS}
                FROM leaves
                WHERE employee_id=%s AND start_date < %s AND end_date >= %s
                ORDER BY start_date
                """,
                (int(employee_id), end_exclusive, start),
            )
            return [_to_leave(r) for r in fetchall(cur)]

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
        with db_cursor(self._conn_factory) as (_, cur):
            return set_leave_decision(
                cur,
                leave_id=leave_id,
                status=status,
                approver_id=approver_id,
                allocations=allocations,
                fallback_type=fallback_type,
                admin_message=admin_message,
            )

    def delete_auto_before(self, *, employee_id: int, before: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                DELETE FROM leaves
                WHERE employee_id=%s AND start_date < %s
                  AND (is_auto=1 OR auto_penalty_id IS NOT NULL)
                """,
                (int(employee_id), before),
            )
            return int(cur.rowcount or 0)


class MySQLPenaltyRepository(PenaltyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_range(self, *, employee_id: int, start: date, end_exclusive: date) -> Sequence[AttendancePenalty]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_PENALTY_COLUMNS}
                FROM attendance_penalties
                WHERE employee_id=%s AND penalty_date >= %s AND penalty_date < %s
                ORDER BY penalty_date
                """,
                (int(employee_id), start, end_exclusive),
            )
            return [_to_penalty(r) for r in fetchall(cur)]

    def list_unresolved_before(self, *, employee_id: int, before: date) -> Sequence[AttendancePenalty]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_PENALTY_COLUMNS}
                FROM attendance_penalties
                WHERE employee_id=%s AND resolved_at IS NULL AND penalty_date < %s
                ORDER BY penalty_date
                """,
                (int(employee_id), before),
            )
            return [_to_penalty(r) for r in fetchall(cur)]
