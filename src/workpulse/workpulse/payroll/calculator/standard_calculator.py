from __future__ import annotations

from typing import Optional

from .base import PayrollCalculator
from ...attendance.model import DailyAttendanceRecord


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule: the reconciled worked hours; days without a usable pair count as nothing."""

    def worked_hours(self, record: DailyAttendanceRecord) -> Optional[float]:
        if record.merge_case is not None and not record.merge_case.has_worked_hours:
            return None
        hours = record.final_times.worked_hours
        if hours is None:
            return None
        return max(float(hours), 0.0)
