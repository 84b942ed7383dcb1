from __future__ import annotations

from dataclasses import dataclass
from datetime import time

from ..common.datetime_utils import parse_hhmm
from ..common.validators import require_leave_type, require_positive_int
from ..core.constants import (
    DEFAULT_AUTO_LEAVE_CRON,
    DEFAULT_AUTO_LEAVE_LOOKBACK_DAYS,
    DEFAULT_AUTO_LEAVE_TYPE,
    DEFAULT_AUTO_PUNCH_OUT_MODE,
    DEFAULT_AUTO_PUNCH_OUT_TIME,
    DEFAULT_SCHEDULER_TIMEZONE,
)
from ..core.enums import LeaveType, PunchOutMode
from ..core.exceptions import ValidationError

_DEFAULT_PUNCH_TIME = parse_hhmm(DEFAULT_AUTO_PUNCH_OUT_TIME, time(0, 1))


def _flag(value) -> bool:
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class EngineSettings:
    """Job configuration read from a settings module (see config/)."""

    auto_punch_out_time: time = _DEFAULT_PUNCH_TIME
    auto_punch_out_mode: PunchOutMode = PunchOutMode(DEFAULT_AUTO_PUNCH_OUT_MODE)
    auto_leave_cron: str = DEFAULT_AUTO_LEAVE_CRON
    auto_leave_lookback_days: int = DEFAULT_AUTO_LEAVE_LOOKBACK_DAYS
    auto_leave_type: LeaveType = LeaveType(DEFAULT_AUTO_LEAVE_TYPE)
    disable_auto_leave_job: bool = False
    enable_scheduler: bool = True
    scheduler_timezone: str = DEFAULT_SCHEDULER_TIMEZONE

    @classmethod
    def from_module(cls, settings) -> "EngineSettings":
        mode_raw = str(getattr(settings, "AUTO_PUNCH_OUT_MODE", DEFAULT_AUTO_PUNCH_OUT_MODE)).strip().lower()
        try:
            mode = PunchOutMode(mode_raw)
        except ValueError:
            raise ValidationError(f"AUTO_PUNCH_OUT_MODE must be 'stale' or 'yesterday', got {mode_raw!r}")

        return cls(
            auto_punch_out_time=parse_hhmm(getattr(settings, "AUTO_PUNCH_OUT_TIME", None), _DEFAULT_PUNCH_TIME),
            auto_punch_out_mode=mode,
            auto_leave_cron=str(getattr(settings, "AUTO_LEAVE_CRON", DEFAULT_AUTO_LEAVE_CRON)).strip(),
            auto_leave_lookback_days=require_positive_int(
                getattr(settings, "AUTO_LEAVE_LOOKBACK_DAYS", DEFAULT_AUTO_LEAVE_LOOKBACK_DAYS),
                "AUTO_LEAVE_LOOKBACK_DAYS",
            ),
            auto_leave_type=require_leave_type(
                getattr(settings, "AUTO_LEAVE_TYPE", DEFAULT_AUTO_LEAVE_TYPE), "AUTO_LEAVE_TYPE"
            ),
            disable_auto_leave_job=_flag(getattr(settings, "DISABLE_AUTO_LEAVE_JOB", "0")),
            enable_scheduler=_flag(getattr(settings, "ENABLE_SCHEDULER", "1")),
            scheduler_timezone=str(getattr(settings, "SCHEDULER_TIMEZONE", DEFAULT_SCHEDULER_TIMEZONE)),
        )
