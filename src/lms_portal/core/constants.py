"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_PAGE_LIMIT = 50
RESET_TOKEN_TTL_MINUTES = 60
MIN_PASSWORD_LENGTH = 8

DEFAULT_CACHE_TTL_SECONDS = 300
UPCOMING_DEADLINE_DAYS = 7

MAX_GRADE_POINTS = 1000
SIGNIFICANT_GRADE_CHANGE_PERCENT = 20
LONG_FEEDBACK_CHARS = 2000

REMINDER_OFFSETS_HOURS = {"48_HOUR": -48, "24_HOUR": -24, "OVERDUE": 1}
DEFAULT_REMINDER_TIME = "09:00"
REMINDER_MAX_ATTEMPTS = 5

PAYMENT_REMINDER_WINDOW_DAYS = 7
PAYMENT_REMINDER_INTERVAL_HOURS = 24
