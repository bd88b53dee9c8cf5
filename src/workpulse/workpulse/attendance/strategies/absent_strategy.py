from __future__ import annotations

from datetime import date
from typing import Optional

from ...core.enums import AttendanceStatus
from ...shifts.model import Shift
from ..model import MergeOutcome
from .base import DayStatusStrategy, StatusDecision


class AbsentStrategy(DayStatusStrategy):
    """No punch-in from either source."""

    def decide(self, *, outcome: MergeOutcome, work_date: date, shift: Optional[Shift]) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.ABSENT)
