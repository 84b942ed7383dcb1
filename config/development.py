import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "hr_leave_db"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

ENABLE_SCHEDULER = os.getenv("ENABLE_SCHEDULER", "1")
SCHEDULER_TIMEZONE = os.getenv("SCHEDULER_TIMEZONE", "Asia/Kolkata")

# Daily "HH:MM" trigger; malformed values fall back to 00:01
AUTO_PUNCH_OUT_TIME = os.getenv("AUTO_PUNCH_OUT_TIME", "00:01")
AUTO_PUNCH_OUT_MODE = os.getenv("AUTO_PUNCH_OUT_MODE", "stale")

AUTO_LEAVE_CRON = os.getenv("AUTO_LEAVE_CRON", "30 0 * * *")
AUTO_LEAVE_LOOKBACK_DAYS = os.getenv("AUTO_LEAVE_LOOKBACK_DAYS", "2")
AUTO_LEAVE_TYPE = os.getenv("AUTO_LEAVE_TYPE", "PAID")
DISABLE_AUTO_LEAVE_JOB = os.getenv("DISABLE_AUTO_LEAVE_JOB", "0")
