from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class HolidayCredit:
    """Paid hours credited for a day off: a public holiday or an approved paid leave."""

    credit_date: date
    hours: float
    source: str
    label: str = ""


@dataclass(frozen=True)
class PublicHoliday:
    """A company-wide (``dept_id`` None) or department holiday.

    ``credit_hours`` None means the configured default day length.
    """

    holiday_id: int
    holiday_date: date
    name: str
    dept_id: Optional[int] = None
    is_paid: bool = True
    credit_hours: Optional[float] = None

    def as_dict(self) -> dict:
        return {
            "holiday_id": self.holiday_id,
            "date": self.holiday_date.isoformat(),
            "name": self.name,
            "dept_id": self.dept_id,
            "is_paid": self.is_paid,
            "credit_hours": self.credit_hours,
        }


@dataclass(frozen=True)
class PaidLeave:
    leave_id: int
    user_id: int
    leave_date: date
    hours: float
    reason: Optional[str] = None
    is_approved: bool = False

    def as_dict(self) -> dict:
        return {
            "leave_id": self.leave_id,
            "user_id": self.user_id,
            "date": self.leave_date.isoformat(),
            "hours": self.hours,
            "reason": self.reason,
            "is_approved": self.is_approved,
        }


@dataclass(frozen=True)
class DailyHours:
    work_date: date
    worked_hours: Optional[float]
    regular_hours: float
    overtime_hours: float
    merge_case: Optional[str]
    status: str
    needs_review: bool

    def as_dict(self) -> dict:
        return {
            "date": self.work_date.isoformat(),
            "worked_hours": self.worked_hours,
            "regular_hours": self.regular_hours,
            "overtime_hours": self.overtime_hours,
            "merge_case": self.merge_case,
            "status": self.status,
            "needs_review": self.needs_review,
        }


@dataclass(frozen=True)
class MonthlySalaryComputation:
    """Hours and pay for one employee over a period. Recomputed on demand, never stored."""

    user_id: int
    period_start: date
    period_end: date
    hourly_rate: float
    working_hours: float
    holiday_hours: float
    total_cumulative_hours: float
    calculated_salary: float
    regular_hours: float = 0.0
    overtime_hours: float = 0.0
    days_present: int = 0
    incomplete_days: int = 0
    review_days: int = 0
    daily_breakdown: tuple[DailyHours, ...] = ()
    holiday_breakdown: tuple[HolidayCredit, ...] = ()

    def as_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "hourly_rate": self.hourly_rate,
            "working_hours": self.working_hours,
            "holiday_hours": self.holiday_hours,
            "total_cumulative_hours": self.total_cumulative_hours,
            "calculated_salary": self.calculated_salary,
            "regular_hours": self.regular_hours,
            "overtime_hours": self.overtime_hours,
            "days_present": self.days_present,
            "incomplete_days": self.incomplete_days,
            "review_days": self.review_days,
            "daily_breakdown": [d.as_dict() for d in self.daily_breakdown],
            "holiday_breakdown": [
                {"date": h.credit_date.isoformat(), "hours": h.hours, "source": h.source, "label": h.label}
                for h in self.holiday_breakdown
            ],
        }


@dataclass(frozen=True)
class ConfirmedSalaryRecord:
    """Thực thể miền (domain): Bảng lương đã xác nhận.

    A snapshot of a computation plus the admin's confirmed amount. Editing the
    rate or the confirmed amount never changes ``calculated_salary``.
    """

    record_id: int
    user_id: int
    period_start: date
    period_end: date
    working_hours: float
    holiday_hours: float
    total_cumulative_hours: float
    per_hour_rate: float
    calculated_salary: float
    confirmed_salary: float
    confirmed_by: Optional[int] = None
    confirmation_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    full_name: Optional[str] = None
    employee_code: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "record_id": self.record_id,
            "user_id": self.user_id,
            "full_name": self.full_name,
            "employee_code": self.employee_code,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "working_hours": self.working_hours,
            "holiday_hours": self.holiday_hours,
            "total_cumulative_hours": self.total_cumulative_hours,
            "per_hour_rate": self.per_hour_rate,
            "calculated_salary": self.calculated_salary,
            "confirmed_salary": self.confirmed_salary,
            "confirmed_by": self.confirmed_by,
            "confirmation_notes": self.confirmation_notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class SalaryBucket:
    """A named archive of confirmed salaries, created in one transaction."""

    bucket_id: int
    name: str
    created_by: Optional[int]
    created_at: Optional[datetime]
    record_count: int
    total_amount: float
    entries: tuple[ConfirmedSalaryRecord, ...] = field(default_factory=tuple)

    def as_dict(self, *, with_entries: bool = False) -> dict:
        d = {
            "bucket_id": self.bucket_id,
            "name": self.name,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "record_count": self.record_count,
            "total_amount": self.total_amount,
        }
        if with_entries:
            d["entries"] = [e.as_dict() for e in self.entries]
        return d
