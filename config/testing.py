import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "hr_leave_test_db"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

# Tests drive the jobs directly.
ENABLE_SCHEDULER = "0"
SCHEDULER_TIMEZONE = "Asia/Kolkata"

AUTO_PUNCH_OUT_TIME = "00:01"
AUTO_PUNCH_OUT_MODE = "stale"

AUTO_LEAVE_CRON = "30 0 * * *"
AUTO_LEAVE_LOOKBACK_DAYS = "2"
AUTO_LEAVE_TYPE = "PAID"
DISABLE_AUTO_LEAVE_JOB = "1"
