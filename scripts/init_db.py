from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.attendance_leave.attendance_leave.database.bootstrap import apply_schema, list_tables
from src.attendance_leave.attendance_leave.database.connection import DatabaseConnection, DBConfig

logger = logging.getLogger("init_db")


def main() -> None:
    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    settings = importlib.import_module(get_settings_module())
    conn = DatabaseConnection(DBConfig.from_mapping(settings.DB_CONFIG))

    schema_path = REPO_ROOT / "database" / "schema.sql"
    apply_schema(conn, schema_path=schema_path)
    cfg = conn.config
    logger.info(
        "applied schema.sql -> %s@%s:%s/%s (tables=%s)",
        cfg.user,
        cfg.host,
        cfg.port,
        cfg.database,
        len(list_tables(conn)),
    )


if __name__ == "__main__":
    main()
