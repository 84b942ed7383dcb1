"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_AUTO_PUNCH_OUT_TIME = "00:01"
DEFAULT_AUTO_PUNCH_OUT_MODE = "stale"
DEFAULT_AUTO_LEAVE_CRON = "30 0 * * *"
DEFAULT_AUTO_LEAVE_LOOKBACK_DAYS = 2
DEFAULT_AUTO_LEAVE_TYPE = "PAID"
DEFAULT_SCHEDULER_TIMEZONE = "Asia/Kolkata"

# Force-closed sessions always add at least this much worked time.
MIN_AUTO_PUNCH_MS = 60 * 1000

DEFAULT_BALANCE_RETRIES = 5
DEFAULT_HISTORY_LIMIT = 30

# Saturday, Sunday (date.weekday numbering)
DEFAULT_WEEKLY_OFF_DAYS = (5, 6)
