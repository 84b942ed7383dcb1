from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class AttendanceDay:
    """Domain entity: one employee's punch record for one calendar day."""

    attendance_id: int
    employee_id: int
    work_date: date
    first_punch_in: Optional[datetime] = None
    last_punch_in: Optional[datetime] = None
    last_punch_out: Optional[datetime] = None
    worked_ms: int = 0
    auto_punch_out: bool = False
    auto_punch_out_at: Optional[datetime] = None
    auto_punch_last_in: Optional[datetime] = None
    auto_punch_resolved_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.last_punch_in is not None and self.last_punch_out is None

    @property
    def has_valid_punch_in(self) -> bool:
        return self.first_punch_in is not None
