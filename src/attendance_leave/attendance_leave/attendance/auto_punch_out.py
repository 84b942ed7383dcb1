from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Optional

from ..common.datetime_utils import now_local, start_of_day, to_ms
from ..core.constants import MIN_AUTO_PUNCH_MS
from ..core.enums import PunchOutMode
from .model import AttendanceDay
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

MIN_AUTO_PUNCH = timedelta(milliseconds=MIN_AUTO_PUNCH_MS)


@dataclass(frozen=True)
class AutoPunchOutResult:
    candidates: int = 0
    closed: int = 0
    skipped: int = 0
    failed: int = 0


def auto_close_time(
    last_in: datetime,
    cutoff: datetime,
    now: datetime,
    day_end: Optional[datetime] = None,
) -> Optional[datetime]:
    """Time at which a stale session is force-closed.

    At most ``now``, the cutoff and ``day_end`` (the close time of the
    session's work day), at least one minute after ``last_in``.
    Returns None when the session opened too close to (or after) the cutoff
    to be closed without overshooting it.
    """
    upper = min(cutoff, now)
    if day_end is not None:
        upper = min(upper, day_end)
    if upper - last_in < MIN_AUTO_PUNCH:
        return None
    return max(upper, last_in + MIN_AUTO_PUNCH)


class AutoPunchOutJob:
    """Closes punch sessions left open on earlier days.

    A session is never credited past ``day_close_time`` on the day after its
    work date, however many nightly runs it was missed by.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        mode: PunchOutMode = PunchOutMode.STALE,
        day_close_time: time = time(0, 1),
    ):
        self._attendance = attendance
        self._mode = PunchOutMode(mode)
        self._day_close_time = day_close_time

    def _candidates(self, now: datetime):
        today = now.date()
        if self._mode is PunchOutMode.YESTERDAY:
            return self._attendance.list_open(before=today, on=today - timedelta(days=1))
        return self._attendance.list_open(before=today)

    def run(self, *, now: Optional[datetime] = None) -> AutoPunchOutResult:
        now = now or now_local()
        cutoff = now.replace(second=0, microsecond=0)

        records = list(self._candidates(now))
        logger.info("[auto-punchout] %s mode=%s candidates=%s", now.isoformat(), self._mode.value, len(records))

        closed = skipped = failed = 0
        for record in records:
            try:
                if self._close(record, cutoff=cutoff, now=now):
                    closed += 1
                else:
                    skipped += 1
            except Exception:
                failed += 1
                logger.exception(
                    "[auto-punchout] failed employee=%s date=%s", record.employee_id, record.work_date.isoformat()
                )

        return AutoPunchOutResult(candidates=len(records), closed=closed, skipped=skipped, failed=failed)

    def _close(self, record: AttendanceDay, *, cutoff: datetime, now: datetime) -> bool:
        last_in = record.last_punch_in
        if last_in is None or record.work_date >= start_of_day(now).date():
            return False

        day_end = datetime.combine(record.work_date + timedelta(days=1), self._day_close_time)
        closed_at = auto_close_time(last_in, cutoff, now, day_end)
        if closed_at is None:
            logger.warning(
                "[auto-punchout] employee=%s date=%s punched in at %s, too close to cutoff %s; left open",
                record.employee_id,
                record.work_date.isoformat(),
                last_in.isoformat(),
                cutoff.isoformat(),
            )
            return False

        added_ms = to_ms(closed_at - last_in)
        ok = self._attendance.close_session(
            attendance_id=record.attendance_id,
            expected_last_in=last_in,
            closed_at=closed_at,
            added_ms=added_ms,
        )
        if not ok:
            # Punched out (or closed by another run) since we listed it.
            return False

        logger.info(
            "[auto-punchout] closed employee=%s date=%s auto_out=%s +%sm",
            record.employee_id,
            record.work_date.isoformat(),
            closed_at.isoformat(),
            round(added_ms / 60000),
        )
        return True
