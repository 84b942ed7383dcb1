from __future__ import annotations

from datetime import date, datetime

import mysql.connector
import pytest
from mysql.connector import errorcode

from src.attendance_leave.attendance_leave.core.enums import LeaveStatus, LeaveType
from src.attendance_leave.attendance_leave.core.exceptions import AlreadyRecordedError
from src.attendance_leave.attendance_leave.employees.model import BalanceChange, LeaveBuckets
from src.attendance_leave.attendance_leave.leaves.mysql_leave_ledger import MySQLLeaveLedger


class ScriptedCursor:
    """Answers statements by table; rowcount per UPDATE target is configurable."""

    def __init__(self, conn):
        self._conn = conn
        self.rowcount = 0
        self.lastrowid = None

    def execute(self, sql, params=()):
        statement = " ".join(sql.split())
        self._conn.statements.append(statement)
        if statement.startswith("UPDATE employees"):
            self.rowcount = self._conn.balance_rows
        elif statement.startswith("UPDATE attendance_penalties"):
            self.rowcount = self._conn.resolve_rows
        elif statement.startswith("UPDATE leaves"):
            self.rowcount = self._conn.decide_rows
        elif statement.startswith("INSERT INTO attendance_penalties"):
            if self._conn.penalty_error is not None:
                raise self._conn.penalty_error
            self.lastrowid = 41
        elif statement.startswith("INSERT INTO leaves"):
            self.lastrowid = 77

    def close(self):
        pass


class ScriptedConnection:
    def __init__(self):
        self.statements = []
        self.balance_rows = 1
        self.resolve_rows = 1
        self.decide_rows = 1
        self.penalty_error = None
        self.committed = False
        self.rolled_back = False

    def cursor(self, dictionary=True):
        return ScriptedCursor(self)

    def commit(self):
        if not self.rolled_back:
            self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        pass

    def ran(self, prefix):
        return [s for s in self.statements if s.startswith(prefix)]


class ScriptedFactory:
    def __init__(self):
        self.conn = ScriptedConnection()

    def connect(self, **_kwargs):
        return self.conn


CHANGE = BalanceChange(
    employee_id=1,
    expected_version=4,
    total_leave_available=9,
    leave_usage=LeaveBuckets(paid=1),
    leave_balances=LeaveBuckets(paid=11, casual=6, sick=6),
)


def _record(ledger):
    return ledger.record_auto_leave(
        change=CHANGE,
        company_id=1,
        date=date(2024, 3, 11),
        leave_type=LeaveType.PAID,
        fallback_type=None,
        allocations=LeaveBuckets(paid=1),
        reason="Auto leave: no attendance recorded",
    )


def test_auto_leave_writes_balance_penalty_and_leave_together():
    factory = ScriptedFactory()

    penalty, leave = _record(MySQLLeaveLedger(factory))

    assert factory.conn.committed
    assert len(factory.conn.ran("INSERT INTO attendance_penalties")) == 1
    assert leave.auto_penalty_id == penalty.penalty_id == 41
    assert leave.status is LeaveStatus.APPROVED and leave.is_auto


def test_duplicate_penalty_rolls_back_the_debit():
    factory = ScriptedFactory()
    factory.conn.penalty_error = mysql.connector.IntegrityError(
        msg="Duplicate entry '1-2024-03-11' for key 'uq_penalty_employee_date'",
        errno=errorcode.ER_DUP_ENTRY,
    )

    with pytest.raises(AlreadyRecordedError):
        _record(MySQLLeaveLedger(factory))

    assert factory.conn.rolled_back
    assert not factory.conn.committed
    assert factory.conn.ran("INSERT INTO leaves") == []


def test_version_conflict_writes_nothing():
    factory = ScriptedFactory()
    factory.conn.balance_rows = 0

    assert _record(MySQLLeaveLedger(factory)) is None
    assert factory.conn.rolled_back
    assert factory.conn.ran("INSERT") == []


def test_resolving_a_resolved_penalty_skips_the_refund():
    factory = ScriptedFactory()
    factory.conn.resolve_rows = 0

    with pytest.raises(AlreadyRecordedError):
        MySQLLeaveLedger(factory).resolve_penalty(
            change=CHANGE, penalty_id=41, resolved_at=datetime(2024, 4, 1, 9, 0), resolved_by=99
        )

    assert factory.conn.ran("UPDATE employees") == []
    assert not factory.conn.committed


def test_decided_leave_is_not_debited():
    factory = ScriptedFactory()
    factory.conn.decide_rows = 0

    with pytest.raises(AlreadyRecordedError):
        MySQLLeaveLedger(factory).decide_leave(
            change=CHANGE,
            leave_id=77,
            status=LeaveStatus.APPROVED,
            approver_id=1,
            allocations=LeaveBuckets(paid=1),
            fallback_type=None,
        )

    assert factory.conn.ran("UPDATE employees") == []
