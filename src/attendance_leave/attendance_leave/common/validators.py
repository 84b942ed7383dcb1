from __future__ import annotations

from datetime import date

from ..core.enums import LeaveType
from ..core.exceptions import ValidationError


def require_positive_int(value, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a positive integer")
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a positive integer")
    if number <= 0:
        raise ValidationError(f"{field_name} must be a positive integer")
    return number


def require_window(start: date, end_exclusive: date) -> None:
    if not isinstance(start, date) or not isinstance(end_exclusive, date):
        raise ValidationError("Window bounds must be dates")
    if start >= end_exclusive:
        raise ValidationError("Window start must be before its exclusive end")


def require_leave_type(value, field_name: str = "leave type") -> LeaveType:
    if isinstance(value, LeaveType):
        return value
    try:
        return LeaveType(str(value or "").strip().upper())
    except ValueError:
        raise ValidationError(f"Invalid {field_name}: {value!r}")
