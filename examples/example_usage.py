"""Example: drive the engine through the container, without Flask.

Runs each batch job once, the same way the scheduler would.
"""

import importlib
import logging

from config import get_settings_module

from src.attendance_leave.attendance_leave.common.datetime_utils import configure_timezone
from src.attendance_leave.attendance_leave.container import build_container
from src.attendance_leave.attendance_leave.scheduling.settings import EngineSettings


def main():
    logging.basicConfig(level=logging.INFO)
    settings = importlib.import_module(get_settings_module())
    engine_settings = EngineSettings.from_module(settings)
    configure_timezone(engine_settings.scheduler_timezone)
    container = build_container(db_config=settings.DB_CONFIG, settings=engine_settings)

    print(container.auto_punch_out_job.run())
    summary = container.auto_leave_generator.run()
    print(f"auto-leave: {summary.leaves_created} leaves for {len(summary.notices)} employees")
    print(container.attendance_service.history(1, limit=5))


if __name__ == "__main__":
    main()
