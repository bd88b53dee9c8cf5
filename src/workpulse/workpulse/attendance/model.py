from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus, MergeCase


@dataclass(frozen=True)
class PunchPair:
    """One source's in/out pair for a day (app start/end day or biometric device)."""

    punch_in: Optional[datetime] = None
    punch_out: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.punch_in is not None and self.punch_out is not None


@dataclass(frozen=True)
class FinalTimes:
    """Reconciled, authoritative times. ``worked_hours`` is None when not computable."""

    final_in: Optional[datetime] = None
    final_out: Optional[datetime] = None
    worked_hours: Optional[float] = None


@dataclass(frozen=True)
class TimeDifferences:
    in_diff_minutes: Optional[float]
    out_diff_minutes: Optional[float]
    in_within_tolerance: bool
    out_within_tolerance: bool


@dataclass(frozen=True)
class DailyAttendanceRecord:
    """Thực thể miền (domain): Bản ghi chấm công theo ngày.

    Unique per (user_id, work_date). ``final_times`` is derived from the two
    raw punch pairs unless ``is_manual_override`` is set.
    """

    attendance_id: int
    user_id: int
    work_date: date
    app_punch: PunchPair = field(default_factory=PunchPair)
    biometric_punch: PunchPair = field(default_factory=PunchPair)
    final_times: FinalTimes = field(default_factory=FinalTimes)
    merge_case: Optional[MergeCase] = None
    remarks: Optional[str] = None
    status: AttendanceStatus = AttendanceStatus.ABSENT
    needs_review: bool = False
    time_differences: Optional[TimeDifferences] = None
    is_manual_override: bool = False
    location_label: Optional[str] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class MergeOutcome:
    """Result of reconciling one day's punches."""

    final_times: FinalTimes
    merge_case: MergeCase
    remarks: str
    needs_review: bool = False
    time_differences: Optional[TimeDifferences] = None


@dataclass(frozen=True)
class ReconciledDay:
    """What gets written back after reconciliation: merge outcome plus day status."""

    outcome: MergeOutcome
    status: AttendanceStatus
    note: Optional[str] = None


@dataclass(frozen=True)
class AttendanceReportRow:
    """Read-model phục vụ báo cáo/xuất file (tối ưu cho truy vấn)."""

    user_id: int
    full_name: str
    username: str
    dept_name: Optional[str]
    record: DailyAttendanceRecord


@dataclass
class BiometricImportResult:
    processed: int = 0
    created: int = 0
    updated: int = 0
    errors: list[dict] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "processed": self.processed,
            "created": self.created,
            "updated": self.updated,
            "errors": list(self.errors),
        }
