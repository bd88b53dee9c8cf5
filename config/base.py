"""Settings shared by every environment; values come from the environment (.env via python-dotenv)."""

import os


def env_flag(name: str, default: str = "0") -> bool:
    return bool(int(os.getenv(name, default)))


def db_config(default_password: str = "") -> dict:
    return {
        "host": os.getenv("DB_HOST", "localhost"),
        "port": int(os.getenv("DB_PORT", "3306")),
        "user": os.getenv("DB_USER", "root"),
        "password": os.getenv("DB_PASSWORD", default_password),
        "database": os.getenv("DB_NAME", "workpulse_db"),
    }


# Domain settings; see workpulse.core.constants for the defaults.
WORKPULSE = {
    "MATCH_TOLERANCE_MINUTES": float(os.getenv("MATCH_TOLERANCE_MINUTES", "20")),
    "TIE_BREAK": os.getenv("TIE_BREAK", "BIOMETRIC").upper(),
    "LATE_GRACE_MINUTES": int(os.getenv("LATE_GRACE_MINUTES", "5")),
    "HALF_DAY_HOURS": float(os.getenv("HALF_DAY_HOURS", "4")),
    "MAX_REGULAR_HOURS_PER_DAY": float(os.getenv("MAX_REGULAR_HOURS_PER_DAY", "8")),
    "DEFAULT_HOLIDAY_HOURS": float(os.getenv("DEFAULT_HOLIDAY_HOURS", "8")),
    "LIVE_WINDOW_SECONDS": int(os.getenv("LIVE_WINDOW_SECONDS", "30")),
    "GEOCODER_URL": os.getenv("GEOCODER_URL", "https://nominatim.openstreetmap.org/reverse"),
    "GEOCODER_TIMEOUT_SECONDS": float(os.getenv("GEOCODER_TIMEOUT_SECONDS", "10")),
    "GEOCODER_USER_AGENT": os.getenv("GEOCODER_USER_AGENT", "WorkPulse-Attendance/1.0"),
}
