from __future__ import annotations

import atexit
import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .database.bootstrap import apply_schema, list_tables

from .common.datetime_utils import configure_timezone
from .container import build_container
from .attendance.controller import register as register_attendance
from .leaves.controller import register as register_leaves
from .scheduling.registry import ApschedulerRegistry, register_auto_leave, register_auto_punch_out
from .scheduling.settings import EngineSettings

logger = logging.getLogger(__name__)


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    logging.basicConfig(
        level=str(getattr(settings, "LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))

    engine_settings = EngineSettings.from_module(settings)
    configure_timezone(engine_settings.scheduler_timezone)
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    container = build_container(db_config=db_config, settings=engine_settings)

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(container.conn, schema_path=schema_path)
        logger.info("schema ready (tables=%s)", len(list_tables(container.conn)))

    register_attendance(app, container)
    register_leaves(app, container)

    if engine_settings.enable_scheduler:
        registry = ApschedulerRegistry(timezone=engine_settings.scheduler_timezone)
        register_auto_punch_out(registry, container.auto_punch_out_job, engine_settings.auto_punch_out_time)
        register_auto_leave(
            registry,
            container.auto_leave_generator,
            engine_settings.auto_leave_cron,
            disabled=engine_settings.disable_auto_leave_job,
        )
        registry.start()
        atexit.register(registry.shutdown)
        app.extensions["job_registry"] = registry

    return app
