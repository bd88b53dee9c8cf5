from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from ..core.constants import DEFAULT_HALF_DAY_HOURS, DEFAULT_LATE_GRACE_MINUTES
from ..shifts.model import Shift
from .model import MergeOutcome
from .strategies.absent_strategy import AbsentStrategy
from .strategies.base import DayStatusStrategy
from .strategies.half_day_strategy import HalfDayStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.present_strategy import PresentStrategy


@dataclass
class DayStatusFactory:
    """Factory Pattern: choose the status strategy for a reconciled day.

    Order: Absent, Half Day, Late, Present.
    """

    grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES
    half_day_hours: float = DEFAULT_HALF_DAY_HOURS

    def for_day(self, *, outcome: MergeOutcome, work_date: date, shift: Optional[Shift]) -> DayStatusStrategy:
        final = outcome.final_times
        if final.final_in is None:
            return AbsentStrategy()

        if final.worked_hours is not None and final.worked_hours < self.half_day_hours:
            return HalfDayStrategy()

        if shift and final.final_in > shift.starts_at(work_date) + timedelta(minutes=self.grace_minutes):
            return LateStrategy()
        return PresentStrategy()
