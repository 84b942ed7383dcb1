from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from ..common.datetime_utils import now_local, to_ms
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.exceptions import NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from .model import AttendanceDay
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

PUNCH_ACTIONS = ("in", "out")


class AttendanceLedgerService:
    """Punch in / punch out state machine over the daily attendance record.

    CLOSED -> OPEN on punch-in, OPEN -> CLOSED on punch-out. The first
    punch-in of the day is recorded once and never overwritten.
    """

    def __init__(self, attendance: AttendanceRepository, employees: EmployeeRepository):
        self._attendance = attendance
        self._employees = employees

    def _require_employee(self, employee_id: int) -> None:
        if not self._employees.get_by_id(int(employee_id)):
            raise NotFoundError("Employee not found")

    def punch(self, employee_id: int, action: str, *, now: Optional[datetime] = None) -> AttendanceDay:
        action = (action or "").strip().lower()
        if action not in PUNCH_ACTIONS:
            raise ValidationError("Invalid action, expected 'in' or 'out'")
        if action == "in":
            return self.punch_in(employee_id, now=now)
        return self.punch_out(employee_id, now=now)

    def punch_in(self, employee_id: int, *, now: Optional[datetime] = None) -> AttendanceDay:
        now = now or now_local()
        today = now.date()
        self._require_employee(employee_id)

        record = self._attendance.get_for_employee_and_date(int(employee_id), today)
        if record is None:
            return self._attendance.create_punch_in(employee_id=int(employee_id), work_date=today, punched_at=now)

        if record.is_open:
            raise ValidationError("Already punched in")

        reopened = replace(
            record,
            first_punch_in=record.first_punch_in or now,
            last_punch_in=now,
            last_punch_out=None,
        )
        self._attendance.save(reopened)
        return reopened

    def punch_out(self, employee_id: int, *, now: Optional[datetime] = None) -> AttendanceDay:
        now = now or now_local()
        today = now.date()

        record = self._attendance.get_for_employee_and_date(int(employee_id), today)
        if record is None:
            raise ValidationError("Must punch in first")
        if not record.is_open:
            raise ValidationError("Already punched out")

        added = max(0, to_ms(now - record.last_punch_in))
        closed = replace(
            record,
            worked_ms=record.worked_ms + added,
            last_punch_in=None,
            last_punch_out=now,
        )
        self._attendance.save(closed)
        return closed

    def get_today(self, employee_id: int, *, now: Optional[datetime] = None) -> Optional[AttendanceDay]:
        today = (now or now_local()).date()
        return self._attendance.get_for_employee_and_date(int(employee_id), today)

    def history(self, employee_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceDay]:
        return self._attendance.list_recent_for_employee(int(employee_id), int(limit))

    def resolve_auto_punch_out(
        self,
        attendance_id: int,
        corrected_out: datetime,
        *,
        now: Optional[datetime] = None,
    ) -> AttendanceDay:
        """Replace a system punch-out with the time the employee actually left."""
        record = self._attendance.get_by_id(int(attendance_id))
        if record is None:
            raise NotFoundError("Attendance record not found")
        if not record.auto_punch_out or record.auto_punch_out_at is None or record.auto_punch_last_in is None:
            raise ValidationError("Record was not closed by auto punch-out")
        if record.auto_punch_resolved_at is not None:
            raise ValidationError("Auto punch-out already resolved")
        if corrected_out <= record.auto_punch_last_in:
            raise ValidationError("Corrected punch-out must be after the punch-in it closes")

        system_ms = to_ms(record.auto_punch_out_at - record.auto_punch_last_in)
        corrected_ms = to_ms(corrected_out - record.auto_punch_last_in)
        resolved = replace(
            record,
            worked_ms=max(0, record.worked_ms - system_ms + corrected_ms),
            last_punch_out=corrected_out if record.last_punch_in is None else record.last_punch_out,
            auto_punch_resolved_at=now or now_local(),
        )
        self._attendance.save(resolved)
        logger.info(
            "auto punch-out resolved attendance=%s employee=%s corrected_out=%s",
            record.attendance_id,
            record.employee_id,
            corrected_out.isoformat(),
        )
        return resolved
