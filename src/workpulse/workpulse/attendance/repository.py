from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceReportRow, DailyAttendanceRecord, ReconciledDay


class AttendanceRepository(Protocol):
    """Attendance record store: one row per (user, date).

    App and biometric punches are written through separate upserts that never
    touch the other source's columns.
    """

    def get_by_id(self, attendance_id: int) -> Optional[DailyAttendanceRecord]:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[DailyAttendanceRecord]:
        raise NotImplementedError

    def upsert_app_punch(
        self,
        *,
        user_id: int,
        work_date: date,
        punch_in: Optional[datetime] = None,
        punch_out: Optional[datetime] = None,
        location_label: Optional[str] = None,
    ) -> tuple[int, bool]:
        """Set only the supplied app fields. Returns (attendance_id, created)."""

        raise NotImplementedError

    def upsert_biometric_punch(
        self,
        *,
        user_id: int,
        work_date: date,
        punch_in: Optional[datetime],
        punch_out: Optional[datetime],
    ) -> tuple[int, bool]:
        """Replace the biometric pair. Returns (attendance_id, created)."""

        raise NotImplementedError

    def save_reconciliation(self, *, attendance_id: int, day: ReconciledDay) -> bool:
        """Write derived fields; no-op for manually overridden rows."""

        raise NotImplementedError

    def apply_manual_override(
        self,
        *,
        attendance_id: int,
        final_in: Optional[datetime],
        final_out: Optional[datetime],
        worked_hours: Optional[float],
        note: Optional[str] = None,
    ) -> bool:
        """Admin-only correction; reconciliation leaves the row alone afterwards."""

        raise NotImplementedError

    def set_status(self, *, attendance_id: int, status: AttendanceStatus, note: Optional[str] = None) -> bool:
        raise NotImplementedError

    def list_range(
        self,
        *,
        start_date: date,
        end_date: date,
        user_id: Optional[int] = None,
        dept_id: Optional[int] = None,
    ) -> Sequence[DailyAttendanceRecord]:
        raise NotImplementedError

    def list_for_review(
        self,
        *,
        start_date: date,
        end_date: date,
        dept_id: Optional[int] = None,
    ) -> Sequence[DailyAttendanceRecord]:
        raise NotImplementedError

    def get_recent_for_user(self, user_id: int, limit: int) -> Sequence[DailyAttendanceRecord]:
        raise NotImplementedError

    def get_report_rows(
        self,
        *,
        start_date: date,
        end_date: date,
        dept_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> Sequence[AttendanceReportRow]:
        raise NotImplementedError

    def purge(self, attendance_id: int) -> bool:
        raise NotImplementedError
