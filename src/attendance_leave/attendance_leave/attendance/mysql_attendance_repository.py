from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceDay
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, employee_id, work_date, first_punch_in, last_punch_in, last_punch_out,
    worked_ms, auto_punch_out, auto_punch_out_at, auto_punch_last_in, auto_punch_resolved_at
"""


def _to_day(r: dict) -> AttendanceDay:
    return AttendanceDay(
        attendance_id=int(r["attendance_id"]),
        employee_id=int(r["employee_id"]),
        work_date=r["work_date"],
        first_punch_in=r.get("first_punch_in"),
        last_punch_in=r.get("last_punch_in"),
        last_punch_out=r.get("last_punch_out"),
        worked_ms=int(r.get("worked_ms") or 0),
        auto_punch_out=bool(r.get("auto_punch_out")),
        auto_punch_out_at=r.get("auto_punch_out_at"),
        auto_punch_last_in=r.get("auto_punch_last_in"),
        auto_punch_resolved_at=r.get("auto_punch_resolved_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceDay]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _to_day(r) if r else None

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceDay]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance WHERE employee_id=%s AND work_date=%s",
                (int(employee_id), work_date),
            )
            r = fetchone(cur)
            return _to_day(r) if r else None

    def list_recent_for_employee(self, employee_id: int, limit: int) -> Sequence[AttendanceDay]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance
                WHERE employee_id=%s
                ORDER BY work_date DESC
                LIMIT %s
                """,
                (int(employee_id), int(limit)),
            )
            return [_to_day(r) for r in fetchall(cur)]

    def list_for_employee_range(self, employee_id: int, start: date, end_exclusive: date) -> Sequence[AttendanceDay]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance
                WHERE employee_id=%s AND work_date >= %s AND work_date < %s
                ORDER BY work_date
                """,
                (int(employee_id), start, end_exclusive),
            )
            return [_to_day(r) for r in fetchall(cur)]

    def list_open(self, *, before: date, on: Optional[date] = None) -> Sequence[AttendanceDay]:
        if on is not None:
            where, params = "work_date=%s", (on,)
        else:
            where, params = "work_date < %s", (before,)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance
                WHERE {where} AND last_punch_in IS NOT NULL
                ORDER BY work_date, employee_id
                """,
                params,
            )
            return [_to_day(r) for r in fetchall(cur)]

    def create_punch_in(self, *, employee_id: int, work_date: date, punched_at: datetime) -> AttendanceDay:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance(employee_id, work_date, first_punch_in, last_punch_in, worked_ms)
                VALUES(%s,%s,%s,%s,0)
                """,
                (int(employee_id), work_date, punched_at, punched_at),
            )
            return AttendanceDay(
                attendance_id=int(cur.lastrowid),
                employee_id=int(employee_id),
                work_date=work_date,
                first_punch_in=punched_at,
                last_punch_in=punched_at,
            )

    def save(self, record: AttendanceDay) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET first_punch_in=%s, last_punch_in=%s, last_punch_out=%s, worked_ms=%s,
                    auto_punch_out=%s, auto_punch_out_at=%s, auto_punch_last_in=%s, auto_punch_resolved_at=%s
                WHERE attendance_id=%s
                """,
                (
                    record.first_punch_in,
                    record.last_punch_in,
                    record.last_punch_out,
                    int(record.worked_ms),
                    int(record.auto_punch_out),
                    record.auto_punch_out_at,
                    record.auto_punch_last_in,
                    record.auto_punch_resolved_at,
                    int(record.attendance_id),
                ),
            )
            return cur.rowcount > 0

    def close_session(
        self,
        *,
        attendance_id: int,
        expected_last_in: datetime,
        closed_at: datetime,
        added_ms: int,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET worked_ms = worked_ms + %s,
                    last_punch_out=%s,
                    last_punch_in=NULL,
                    auto_punch_out=1,
                    auto_punch_out_at=%s,
                    auto_punch_last_in=%s,
                    auto_punch_resolved_at=NULL
                WHERE attendance_id=%s AND last_punch_in=%s
                """,
                (int(added_ms), closed_at, closed_at, expected_last_in, int(attendance_id), expected_last_in),
            )
            return cur.rowcount > 0
