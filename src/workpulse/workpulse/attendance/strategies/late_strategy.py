from __future__ import annotations

from datetime import date
from typing import Optional

from ...core.enums import AttendanceStatus
from ...shifts.model import Shift
from ..model import MergeOutcome
from .base import DayStatusStrategy, StatusDecision


class LateStrategy(DayStatusStrategy):
    """Final punch-in after shift start plus grace."""

    def decide(self, *, outcome: MergeOutcome, work_date: date, shift: Optional[Shift]) -> StatusDecision:
        note = None
        if shift and outcome.final_times.final_in:
            late_minutes = int((outcome.final_times.final_in - shift.starts_at(work_date)).total_seconds() // 60)
            note = f"Late by {late_minutes} min"
        return StatusDecision(status=AttendanceStatus.LATE, note=note)
