from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from ...attendance.model import DailyAttendanceRecord
from ...common.validators import require_number
from ...core.constants import DEFAULT_MAX_REGULAR_HOURS_PER_DAY
from ...core.exceptions import ValidationError
from ..model import DailyHours, HolidayCredit, MonthlySalaryComputation
from .base import PayrollCalculator
from .standard_calculator import StandardPayrollCalculator


class HourlySalaryCalculator:
    """Aggregate reconciled days and holiday credits into hours and pay.

    Worked hours per day come from a ``PayrollCalculator``; days without a
    computable pair (no punch-out, incomplete data) contribute nothing and are
    counted as ``incomplete_days``. Holiday credits are independent of
    attendance and only need to fall inside the period.
    """

    def __init__(
        self,
        calculator: Optional[PayrollCalculator] = None,
        *,
        max_regular_hours_per_day: float = DEFAULT_MAX_REGULAR_HOURS_PER_DAY,
    ):
        if max_regular_hours_per_day <= 0:
            raise ValidationError("Regular hours per day must be positive")
        self._calculator = calculator or StandardPayrollCalculator()
        self._max_regular = float(max_regular_hours_per_day)

    def compute(
        self,
        *,
        user_id: int,
        records: Iterable[DailyAttendanceRecord],
        hourly_rate,
        holiday_credits: Iterable[HolidayCredit] = (),
        start: date,
        end: date,
    ) -> MonthlySalaryComputation:
        if end < start:
            raise ValidationError("End date cannot be before start date")
        rate = require_number(hourly_rate, "Hourly rate", minimum=0)

        in_range = sorted(
            (r for r in records if r.user_id == int(user_id) and start <= r.work_date <= end),
            key=lambda r: r.work_date,
        )

        working = 0.0
        regular = 0.0
        overtime = 0.0
        days_present = 0
        incomplete_days = 0
        review_days = 0
        breakdown: list[DailyHours] = []

        for r in in_range:
            hours = self._calculator.worked_hours(r)
            if r.needs_review:
                review_days += 1

            if hours is None:
                if r.merge_case is not None:
                    incomplete_days += 1
                day_regular = day_overtime = 0.0
            else:
                days_present += 1
                working += hours
                day_regular = min(hours, self._max_regular)
                day_overtime = round(hours - day_regular, 2)
                regular += day_regular
                overtime += day_overtime

            breakdown.append(
                DailyHours(
                    work_date=r.work_date,
                    worked_hours=hours,
                    regular_hours=round(day_regular, 2),
                    overtime_hours=day_overtime,
                    merge_case=r.merge_case.value if r.merge_case else None,
                    status=r.status.value,
                    needs_review=r.needs_review,
                )
            )

        credits = sorted(
            (c for c in holiday_credits if start <= c.credit_date <= end),
            key=lambda c: c.credit_date,
        )

        working_hours = round(working, 2)
        holiday_hours = round(sum(float(c.hours) for c in credits), 2)
        total = round(working_hours + holiday_hours, 2)

        return MonthlySalaryComputation(
            user_id=int(user_id),
            period_start=start,
            period_end=end,
            hourly_rate=rate,
            working_hours=working_hours,
            holiday_hours=holiday_hours,
            total_cumulative_hours=total,
            calculated_salary=round(rate * total, 2),
            regular_hours=round(regular, 2),
            overtime_hours=round(overtime, 2),
            days_present=days_present,
            incomplete_days=incomplete_days,
            review_days=review_days,
            daily_breakdown=tuple(breakdown),
            holiday_breakdown=tuple(credits),
        )
