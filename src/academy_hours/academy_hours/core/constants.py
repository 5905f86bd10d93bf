"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# Ledger
DEFAULT_LOW_BALANCE_THRESHOLD = 5
DEFAULT_EXPIRY_WARNING_DAYS = 30
DEFAULT_HISTORY_LIMIT = 50
RECENT_TRANSACTIONS_LIMIT = 10
HOURS_PRECISION = 2

# Leave refund policy (percent of the class hours returned)
REFUND_FULL = 100
REFUND_PARTIAL = 50
REFUND_LIMITED = 25
REFUND_MEDICAL_EMERGENCY = 75
REFUND_NONE = 0

FULL_REFUND_HOURS = 48
PARTIAL_REFUND_HOURS = 24
LIMITED_REFUND_HOURS = 2

DEFAULT_LEAVE_REFUND_HOURS = 1
DEFAULT_PAGE_SIZE = 10

# Make-up suggestions
SELECTION_WINDOW_DAYS = 7
MAX_SUGGESTIONS = 5
MAX_SUGGESTIONS_PER_TEACHER = 2
MAX_SUGGESTIONS_PER_DAY = 3
CANDIDATE_LIMIT = 50
DEFAULT_CLASS_DURATION_MINUTES = 60
DEFAULT_CLASS_CAPACITY = 9

# Analytics
ANALYTICS_CACHE_TTL_SECONDS = 30 * 60
PEAK_HOUR_START = 16
PEAK_HOUR_END = 21
TREND_THRESHOLD_PERCENT = 5
TOP_STUDENTS_LIMIT = 20
