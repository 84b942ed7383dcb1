"""Undo auto-leave charged for days before an employee joined.

Usage:
    python scripts/reconcile_backdated.py --employee 42
    python scripts/reconcile_backdated.py --all

Safe to re-run: a second pass finds nothing left to remove or refund.
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.attendance_leave.attendance_leave.common.datetime_utils import configure_timezone
from src.attendance_leave.attendance_leave.container import build_container
from src.attendance_leave.attendance_leave.core.exceptions import DomainError
from src.attendance_leave.attendance_leave.leaves.reconciler import ALL_EMPLOYEES
from src.attendance_leave.attendance_leave.scheduling.settings import EngineSettings

logger = logging.getLogger("reconcile_backdated")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--employee", help="employee id to reconcile")
    target.add_argument("--all", action="store_true", help="reconcile every employee with a joining date")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(
        level=str(getattr(settings, "LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine_settings = EngineSettings.from_module(settings)
    configure_timezone(engine_settings.scheduler_timezone)
    container = build_container(db_config=settings.DB_CONFIG, settings=engine_settings)
    target = ALL_EMPLOYEES if args.all else args.employee
    try:
        summary = container.reconciler.reconcile(target)
    except DomainError as e:
        logger.error("%s", e)
        return 1

    logger.info(
        "done: employees=%s leaves removed=%s penalties resolved=%s failures=%s",
        summary.employees_checked,
        summary.leaves_deleted,
        summary.penalties_resolved,
        summary.failures,
    )
    return 1 if summary.failures else 0


if __name__ == "__main__":
    sys.exit(main())
