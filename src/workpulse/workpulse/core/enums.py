from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for route guards."""

    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"


class AttendanceStatus(str, Enum):
    """Day status stored on the attendance row."""

    PRESENT = "Present"
    ABSENT = "Absent"
    HALF_DAY = "Half Day"
    LATE = "Late"
    ON_LEAVE = "On Leave"
    HOLIDAY = "Holiday"


class MergeCase(str, Enum):
    """Outcome of merging the app and biometric punches for one day."""

    BOTH_MATCHED = "BOTH_MATCHED"
    BOTH_MISMATCH = "BOTH_MISMATCH"
    WF_ONLY = "WF_ONLY"
    BIO_ONLY = "BIO_ONLY"
    NO_OUT = "NO_OUT"
    INCOMPLETE = "INCOMPLETE"

    @property
    def has_worked_hours(self) -> bool:
        return self not in (MergeCase.NO_OUT, MergeCase.INCOMPLETE)


class PunchSource(str, Enum):
    APP = "APP"
    BIOMETRIC = "BIOMETRIC"


class CognitiveState(str, Enum):
    ON_TASK = "ON_TASK"
    THINKING = "THINKING"
    IDLE = "IDLE"
    DISTRACTED = "DISTRACTED"
    AWAY = "AWAY"
    OFF_TASK = "OFF_TASK"
    DEEP_FOCUS = "DEEP_FOCUS"

    @property
    def is_active(self) -> bool:
        return self in (CognitiveState.ON_TASK, CognitiveState.THINKING, CognitiveState.DEEP_FOCUS)


class ProductivityTier(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    VERY_LOW = "VERY_LOW"

    @classmethod
    def for_score(cls, focus_score: float) -> "ProductivityTier":
        if focus_score >= 80:
            return cls.HIGH
        if focus_score >= 60:
            return cls.MEDIUM
        if focus_score >= 40:
            return cls.LOW
        return cls.VERY_LOW
