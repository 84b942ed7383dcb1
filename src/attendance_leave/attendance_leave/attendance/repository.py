from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceDay


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceDay]:
        raise NotImplementedError

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceDay]:
        raise NotImplementedError

    def list_recent_for_employee(self, employee_id: int, limit: int) -> Sequence[AttendanceDay]:
        raise NotImplementedError

    def list_for_employee_range(self, employee_id: int, start: date, end_exclusive: date) -> Sequence[AttendanceDay]:
        raise NotImplementedError

    def list_open(self, *, before: date, on: Optional[date] = None) -> Sequence[AttendanceDay]:
        """Records with a session still open.

        ``on`` restricts to one work date; otherwise every date before ``before``.
        """

        raise NotImplementedError

    def create_punch_in(self, *, employee_id: int, work_date: date, punched_at: datetime) -> AttendanceDay:
        raise NotImplementedError

    def save(self, record: AttendanceDay) -> bool:
        """Overwrite the mutable punch fields of an existing record."""

        raise NotImplementedError

    def close_session(
        self,
        *,
        attendance_id: int,
        expected_last_in: datetime,
        closed_at: datetime,
        added_ms: int,
    ) -> bool:
        """Force-close an open session.

        Applies only if ``last_punch_in`` still equals ``expected_last_in``;
        records the auto punch-out audit fields.
        """

        raise NotImplementedError
