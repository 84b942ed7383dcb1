from __future__ import annotations

import logging
from datetime import time
from typing import Callable, Protocol

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ..attendance.auto_punch_out import AutoPunchOutJob
from ..leaves.auto_leave import AutoLeaveGenerator

logger = logging.getLogger(__name__)

AUTO_PUNCH_OUT_JOB_ID = "auto-punch-out"
AUTO_LEAVE_JOB_ID = "auto-leave"


class JobRegistry(Protocol):
    """Something that can call ``callback`` on a cron schedule."""

    def add_cron(self, job_id: str, cron_expr: str, callback: Callable[[], None]) -> None:
        raise NotImplementedError

    def run_once(self, job_id: str, callback: Callable[[], None]) -> None:
        """Run ``callback`` once, as soon as possible, off the caller's thread."""

        raise NotImplementedError


class ApschedulerRegistry(JobRegistry):
    """JobRegistry backed by an APScheduler BackgroundScheduler."""

    def __init__(self, *, timezone: str, scheduler: BackgroundScheduler | None = None):
        self._timezone = timezone
        self._scheduler = scheduler or BackgroundScheduler(
            timezone=timezone,
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 3600},
        )

    @property
    def scheduler(self) -> BackgroundScheduler:
        return self._scheduler

    def add_cron(self, job_id: str, cron_expr: str, callback: Callable[[], None]) -> None:
        trigger = CronTrigger.from_crontab(cron_expr, timezone=self._timezone)
        self._scheduler.add_job(callback, trigger, id=job_id, replace_existing=True)
        logger.info("scheduled job=%s cron=%r tz=%s", job_id, cron_expr, self._timezone)

    def run_once(self, job_id: str, callback: Callable[[], None]) -> None:
        # No trigger: APScheduler runs the job once, immediately after start.
        self._scheduler.add_job(callback, id=job_id, replace_existing=True)

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)


def cron_for_time(at: time) -> str:
    return f"{at.minute} {at.hour} * * *"


def register_auto_punch_out(registry: JobRegistry, job: AutoPunchOutJob, trigger_time: time) -> None:
    def _run() -> None:
        try:
            job.run()
        except Exception:
            logger.exception("[auto-punchout] scheduled run failed")

    registry.add_cron(AUTO_PUNCH_OUT_JOB_ID, cron_for_time(trigger_time), _run)


def register_auto_leave(
    registry: JobRegistry,
    generator: AutoLeaveGenerator,
    cron_expr: str,
    *,
    disabled: bool = False,
    run_on_start: bool = True,
) -> bool:
    """Schedule the auto-leave job; optionally run it once right away.

    Returns False when the job is disabled by configuration.
    """
    if disabled:
        logger.info("[auto-leave] job disabled via DISABLE_AUTO_LEAVE_JOB")
        return False

    def _run() -> None:
        try:
            generator.run()
        except Exception:
            logger.exception("[auto-leave] scheduled run failed")

    registry.add_cron(AUTO_LEAVE_JOB_ID, cron_expr, _run)
    if run_on_start:
        registry.run_once(f"{AUTO_LEAVE_JOB_ID}-initial", _run)
    return True
