"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
Runtime values come from the settings module (see ``config``).
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_HISTORY_LIMIT = 30
DEFAULT_LATE_GRACE_MINUTES = 5

DEFAULT_MATCH_TOLERANCE_MINUTES = 20
DEFAULT_HALF_DAY_HOURS = 4.0
DEFAULT_MAX_REGULAR_HOURS_PER_DAY = 8.0
DEFAULT_HOLIDAY_HOURS = 8.0

DEFAULT_LIVE_WINDOW_SECONDS = 30
DEFAULT_ANALYTICS_DAYS = 7
RECENT_ACTIVITY_LIMIT = 10

FOCUS_SCORE_MIN = 0
FOCUS_SCORE_MAX = 100

DEFAULT_GEOCODER_URL = "https://nominatim.openstreetmap.org/reverse"
DEFAULT_GEOCODER_TIMEOUT_SECONDS = 10
DEFAULT_GEOCODER_USER_AGENT = "WorkPulse-Attendance/1.0"
