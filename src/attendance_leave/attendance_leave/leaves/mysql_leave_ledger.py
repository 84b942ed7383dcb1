from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Tuple

import mysql.connector
from mysql.connector import errorcode

from ..core.enums import LeaveStatus, LeaveType
from ..core.exceptions import AlreadyRecordedError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from ..employees.model import BalanceChange, LeaveBuckets
from ..employees.mysql_employee_repository import write_balances
from .model import AttendancePenalty, Leave
from .mysql_leave_repository import insert_leave, insert_penalty, set_leave_decision, set_penalty_resolved
from .repository import LeaveLedger


class MySQLLeaveLedger(LeaveLedger):
    """Balance change plus its leave records in a single transaction."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        with db_cursor(self._conn_factory) as (conn, cur):
            if not write_balances(cur, change):
                conn.rollback()
                return None
            try:
                penalty = insert_penalty(
                    cur,
                    employee_id=change.employee_id,
                    company_id=company_id,
                    date=date,
                    allocations=allocations,
                )
            except mysql.connector.IntegrityError as exc:
                if exc.errno == errorcode.ER_DUP_ENTRY:
                    raise AlreadyRecordedError(
                        f"Employee {change.employee_id} already charged for {date.isoformat()}"
                    ) from exc
                raise
            leave = insert_leave(
                cur,
                employee_id=change.employee_id,
                company_id=company_id,
                type=leave_type,
                fallback_type=fallback_type,
                start_date=date,
                end_date=date,
                status=LeaveStatus.APPROVED,
                is_auto=True,
                auto_penalty_id=penalty.penalty_id,
                allocations=allocations,
                reason=reason,
            )
            return penalty, leave

    def resolve_penalty(self, *, change: BalanceChange, penalty_id: int, resolved_at: datetime, resolved_by: int) -> bool:
        with db_cursor(self._conn_factory) as (conn, cur):
            if not set_penalty_resolved(cur, penalty_id=penalty_id, resolved_at=resolved_at, resolved_by=resolved_by):
                raise AlreadyRecordedError(f"Penalty {penalty_id} already resolved")
            if not write_balances(cur, change):
                conn.rollback()
                return False
            return True

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
        with db_cursor(self._conn_factory) as (conn, cur):
            decided = set_leave_decision(
                cur,
                leave_id=leave_id,
                status=status,
                approver_id=approver_id,
                allocations=allocations,
                fallback_type=fallback_type,
                admin_message=admin_message,
            )
            if not decided:
                raise AlreadyRecordedError(f"Leave {leave_id} already decided")
            if not write_balances(cur, change):
                conn.rollback()
                return False
            return True
