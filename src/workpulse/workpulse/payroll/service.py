from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Iterable, Optional

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import parse_optional_date
from ..common.validators import optional_bool, optional_number, optional_text, require_number
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.repository import UserRepository
from .calculator.base import PayrollCalculator
from .calculator.hourly_salary_calculator import HourlySalaryCalculator
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import ConfirmedSalaryRecord, MonthlySalaryComputation, PaidLeave, PublicHoliday, SalaryBucket
from .repository import HolidayRepository, SalaryRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportData:
    rows: list[dict]
    summary: list[dict]


def _hhmm(value: Optional[datetime]) -> str:
    return value.strftime("%H:%M") if value else "-"


class PayrollReportService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        calculator: Optional[PayrollCalculator] = None,
    ):
        self._attendance = attendance
        self._calculator = calculator or StandardPayrollCalculator()

    def build_attendance_report(
        self,
        *,
        start: date,
        end: date,
        user_id: Optional[int] = None,
        dept_id: Optional[int] = None,
    ) -> ReportData:
        query_rows = self._attendance.get_report_rows(start_date=start, end_date=end, user_id=user_id, dept_id=dept_id)

        summary_map: dict[int, dict] = {}
        out_rows: list[dict] = []

        for r in query_rows:
            rec = r.record
            hours = self._calculator.worked_hours(rec)

            out_rows.append(
                {
                    "user_id": r.user_id,
                    "full_name": r.full_name,
                    "username": r.username,
                    "dept_name": r.dept_name or "-",
                    "work_date": rec.work_date.strftime("%Y-%m-%d"),
                    "app_in": _hhmm(rec.app_punch.punch_in),
                    "app_out": _hhmm(rec.app_punch.punch_out),
                    "bio_in": _hhmm(rec.biometric_punch.punch_in),
                    "bio_out": _hhmm(rec.biometric_punch.punch_out),
                    "final_in": _hhmm(rec.final_times.final_in),
                    "final_out": _hhmm(rec.final_times.final_out),
                    "worked_hours": f"{hours:.2f}" if hours is not None else "-",
                    "merge_case": rec.merge_case.value if rec.merge_case else "-",
                    "remarks": rec.remarks or "",
                    "status": rec.status.value,
                    "needs_review": "yes" if rec.needs_review else "no",
                    "note": rec.note or "",
                }
            )

            s = summary_map.get(r.user_id)
            if not s:
                s = {
                    "user_id": r.user_id,
                    "full_name": r.full_name,
                    "username": r.username,
                    "total_hours": 0.0,
                    "days": 0,
                    "review_days": 0,
                }
                summary_map[r.user_id] = s
            s["days"] += 1
            s["total_hours"] += hours or 0.0
            if rec.needs_review:
                s["review_days"] += 1

        summary = []
        for s in summary_map.values():
            s["total_hours"] = round(s["total_hours"], 2)
            summary.append(s)

        summary.sort(key=lambda x: x["total_hours"], reverse=True)
        return ReportData(rows=out_rows, summary=summary)


class SalaryService:
    """Use cases: compute salaries, confirm them, archive confirmed salaries into buckets."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        holidays: HolidayRepository,
        salaries: SalaryRepository,
        *,
        calculator: Optional[HourlySalaryCalculator] = None,
    ):
        self._attendance = attendance
        self._users = users
        self._holidays = holidays
        self._salaries = salaries
        self._calculator = calculator or HourlySalaryCalculator()

    @staticmethod
    def _require_admin(current_role: Role) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can manage salaries")

    def calculate(
        self,
        user_id: int,
        *,
        start: date,
        end: date,
        hourly_rate=None,
    ) -> MonthlySalaryComputation:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError(f"Employee {user_id} does not exist")
        if end < start:
            raise ValidationError("End date cannot be before start date")

        rate = optional_number(hourly_rate, "Hourly rate", minimum=0)
        records = self._attendance.list_range(start_date=start, end_date=end, user_id=user.user_id)
        credits = self._holidays.credits_for_user(user_id=user.user_id, dept_id=user.dept_id, start=start, end=end)

        return self._calculator.compute(
            user_id=user.user_id,
            records=records,
            hourly_rate=user.hourly_rate if rate is None else rate,
            holiday_credits=credits,
            start=start,
            end=end,
        )

    def calculate_all(self, *, start: date, end: date, dept_id: Optional[int] = None) -> list[dict]:
        rows = []
        for user in self._users.list_active(dept_id=dept_id):
            computation = self.calculate(user.user_id, start=start, end=end)
            row = {"full_name": user.full_name, "employee_code": user.employee_code}
            row.update(computation.as_dict())
            row.pop("daily_breakdown")
            row.pop("holiday_breakdown")
            rows.append(row)
        return rows

    def confirm(
        self,
        *,
        current_role: Role,
        confirmed_by: int,
        user_id: int,
        start: date,
        end: date,
        hourly_rate=None,
        confirmed_salary=None,
        confirmation_notes: Optional[str] = None,
    ) -> ConfirmedSalaryRecord:
        self._require_admin(current_role)

        computation = self.calculate(user_id, start=start, end=end, hourly_rate=hourly_rate)
        amount = optional_number(confirmed_salary, "Confirmed salary", minimum=0)

        record = ConfirmedSalaryRecord(
            record_id=0,
            user_id=computation.user_id,
            period_start=start,
            period_end=end,
            working_hours=computation.working_hours,
            holiday_hours=computation.holiday_hours,
            total_cumulative_hours=computation.total_cumulative_hours,
            per_hour_rate=computation.hourly_rate,
            calculated_salary=computation.calculated_salary,
            confirmed_salary=computation.calculated_salary if amount is None else round(amount, 2),
            confirmed_by=int(confirmed_by),
            confirmation_notes=(confirmation_notes or "").strip() or None,
        )
        record_id = self._salaries.add_confirmed(record)
        logger.info(
            "Salary confirmed for user %s (%s..%s): %.2f",
            user_id,
            start,
            end,
            record.confirmed_salary,
        )
        return replace(record, record_id=record_id)

    def update_confirmed(
        self,
        *,
        current_role: Role,
        record_id: int,
        per_hour_rate=None,
        confirmed_salary=None,
        confirmation_notes: Optional[str] = None,
    ) -> ConfirmedSalaryRecord:
        """Edit a confirmed salary.

        A new rate re-derives ``confirmed_salary`` from the stored hours unless a
        confirmed amount is supplied in the same edit, in which case that amount
        wins. ``calculated_salary`` is never touched.
        """

        self._require_admin(current_role)
        existing = self._salaries.get_confirmed(int(record_id))
        if not existing:
            raise NotFoundError(f"Confirmed salary {record_id} does not exist")

        rate = optional_number(per_hour_rate, "Hourly rate", minimum=0)
        amount = optional_number(confirmed_salary, "Confirmed salary", minimum=0)

        new_rate = existing.per_hour_rate if rate is None else rate
        new_amount = existing.confirmed_salary
        if amount is not None:
            new_amount = round(amount, 2)
        elif rate is not None and rate != existing.per_hour_rate:
            new_amount = round(rate * existing.total_cumulative_hours, 2)

        notes = existing.confirmation_notes
        if confirmation_notes is not None:
            notes = confirmation_notes.strip() or None

        if not self._salaries.update_confirmed(
            existing.record_id,
            per_hour_rate=new_rate,
            confirmed_salary=new_amount,
            confirmation_notes=notes,
        ):
            raise NotFoundError(f"Confirmed salary {record_id} does not exist")

        return replace(existing, per_hour_rate=new_rate, confirmed_salary=new_amount, confirmation_notes=notes)

    def remove_confirmation(self, *, current_role: Role, record_id: int) -> None:
        self._require_admin(current_role)
        if not self._salaries.delete_confirmed(int(record_id)):
            raise NotFoundError(f"Confirmed salary {record_id} does not exist")
        logger.info("Confirmed salary %s removed", record_id)

    def list_confirmed(self, *, user_id: Optional[int] = None) -> list[ConfirmedSalaryRecord]:
        return list(self._salaries.list_confirmed(user_id=user_id))

    def create_bucket(
        self,
        *,
        current_role: Role,
        record_ids: Iterable,
        created_by: int,
        name: Optional[str] = None,
    ) -> SalaryBucket:
        self._require_admin(current_role)

        try:
            ids = [int(i) for i in (record_ids or [])]
        except (TypeError, ValueError):
            raise ValidationError("Record ids must be integers")
        if not ids:
            raise ValidationError("Select at least one confirmed salary")
        if len(set(ids)) != len(ids):
            raise ValidationError("Record ids must not repeat")

        known = {r.record_id for r in self._salaries.list_confirmed()}
        unknown = [i for i in ids if i not in known]
        if unknown:
            raise NotFoundError(f"Unknown confirmed salaries: {', '.join(str(i) for i in unknown)}")

        name = (name or "").strip() or f"Payroll {date.today().strftime('%Y-%m-%d')}"
        bucket_id = self._salaries.archive_bucket(name=name, created_by=int(created_by), record_ids=ids)
        return self.get_bucket(bucket_id)

    def list_buckets(self) -> list[SalaryBucket]:
        return list(self._salaries.list_buckets())

    def get_bucket(self, bucket_id: int) -> SalaryBucket:
        bucket = self._salaries.get_bucket(int(bucket_id))
        if not bucket:
            raise NotFoundError(f"Salary bucket {bucket_id} does not exist")
        return bucket


def _optional_id(value, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if number <= 0:
        raise ValidationError(f"{field_name} must be positive")
    return number


def _holiday_name(value) -> str:
    name = optional_text(value, "Holiday name", max_length=150)
    if not name:
        raise ValidationError("Holiday name is required")
    return name


def _credit_hours(value) -> Optional[float]:
    hours = optional_number(value, "Credit hours", minimum=0)
    if hours is not None and hours > 24:
        raise ValidationError("Credit hours must be <= 24")
    return hours


def _leave_hours(value) -> float:
    hours = require_number(value, "Leave hours", minimum=0, maximum=24)
    if hours == 0:
        raise ValidationError("Leave hours must be greater than 0")
    return hours


class HolidayService:
    """Use cases: maintain public holidays and paid leave (admin).

    Paid holidays and approved paid leave are what ``SalaryService`` credits as
    holiday hours, so every change here shows up in the next calculation.
    """

    def __init__(self, holidays: HolidayRepository, users: UserRepository):
        self._holidays = holidays
        self._users = users

    @staticmethod
    def _require_admin(current_role: Role) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can manage holidays and paid leave")

    # ----- public holidays -----

    def list_holidays(self, *, start: Optional[date] = None, end: Optional[date] = None) -> list[PublicHoliday]:
        if start and end and end < start:
            raise ValidationError("End date cannot be before start date")
        return list(self._holidays.list_holidays(start=start, end=end))

    def _require_holiday(self, holiday_id: int) -> PublicHoliday:
        holiday = self._holidays.get_holiday(int(holiday_id))
        if not holiday:
            raise NotFoundError(f"Holiday {holiday_id} does not exist")
        return holiday

    def _check_holiday_clash(self, holiday: PublicHoliday) -> None:
        # the unique key does not cover company-wide (dept_id NULL) rows
        for other in self._holidays.list_holidays(start=holiday.holiday_date, end=holiday.holiday_date):
            if other.holiday_id != holiday.holiday_id and other.dept_id == holiday.dept_id:
                raise ValidationError(f"A holiday already exists on {holiday.holiday_date.isoformat()}")

    def add_holiday(
        self,
        *,
        current_role: Role,
        holiday_date: Optional[date],
        name,
        dept_id=None,
        is_paid=None,
        credit_hours=None,
    ) -> PublicHoliday:
        self._require_admin(current_role)
        if holiday_date is None:
            raise ValidationError("Holiday date is required")

        paid = optional_bool(is_paid, "is_paid")
        holiday = PublicHoliday(
            holiday_id=0,
            holiday_date=holiday_date,
            name=_holiday_name(name),
            dept_id=_optional_id(dept_id, "Department"),
            is_paid=True if paid is None else paid,
            credit_hours=_credit_hours(credit_hours),
        )
        self._check_holiday_clash(holiday)

        holiday = replace(holiday, holiday_id=self._holidays.add_holiday(holiday))
        logger.info("Holiday %s (%s) added on %s", holiday.holiday_id, holiday.name, holiday.holiday_date)
        return holiday

    def update_holiday(self, *, current_role: Role, holiday_id: int, changes: dict) -> PublicHoliday:
        """Apply the keys present in ``changes``: date, name, dept_id, is_paid, credit_hours."""

        self._require_admin(current_role)
        holiday = self._require_holiday(holiday_id)

        if "date" in changes:
            holiday_date = parse_optional_date(changes["date"], "date")
            if holiday_date is None:
                raise ValidationError("Holiday date is required")
            holiday = replace(holiday, holiday_date=holiday_date)
        if "name" in changes:
            holiday = replace(holiday, name=_holiday_name(changes["name"]))
        if "dept_id" in changes:
            holiday = replace(holiday, dept_id=_optional_id(changes["dept_id"], "Department"))
        if "is_paid" in changes:
            paid = optional_bool(changes["is_paid"], "is_paid")
            holiday = replace(holiday, is_paid=holiday.is_paid if paid is None else paid)
        if "credit_hours" in changes:
            holiday = replace(holiday, credit_hours=_credit_hours(changes["credit_hours"]))

        self._check_holiday_clash(holiday)
        if not self._holidays.update_holiday(holiday):
            raise NotFoundError(f"Holiday {holiday_id} does not exist")
        logger.info("Holiday %s updated", holiday.holiday_id)
        return holiday

    def delete_holiday(self, *, current_role: Role, holiday_id: int) -> None:
        self._require_admin(current_role)
        if not self._holidays.delete_holiday(int(holiday_id)):
            raise NotFoundError(f"Holiday {holiday_id} does not exist")
        logger.info("Holiday %s deleted", holiday_id)

    # ----- paid leave -----

    def list_paid_leaves(
        self,
        *,
        user_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[PaidLeave]:
        if start and end and end < start:
            raise ValidationError("End date cannot be before start date")
        return list(self._holidays.list_paid_leaves(user_id=user_id, start=start, end=end))

    def _check_leave_clash(self, leave: PaidLeave) -> None:
        for other in self._holidays.list_paid_leaves(user_id=leave.user_id, start=leave.leave_date, end=leave.leave_date):
            if other.leave_id != leave.leave_id:
                raise ValidationError(f"User {leave.user_id} already has paid leave on {leave.leave_date.isoformat()}")

    def add_paid_leave(
        self,
        *,
        current_role: Role,
        user_id,
        leave_date: Optional[date],
        hours,
        reason=None,
        is_approved=None,
    ) -> PaidLeave:
        self._require_admin(current_role)
        uid = _optional_id(user_id, "user_id")
        if uid is None:
            raise ValidationError("user_id is required")
        if leave_date is None:
            raise ValidationError("Leave date is required")
        if not self._users.get_by_id(uid):
            raise NotFoundError(f"Employee {uid} does not exist")

        approved = optional_bool(is_approved, "is_approved")
        leave = PaidLeave(
            leave_id=0,
            user_id=uid,
            leave_date=leave_date,
            hours=_leave_hours(hours),
            reason=optional_text(reason, "Reason", max_length=255),
            is_approved=bool(approved),
        )
        self._check_leave_clash(leave)

        leave = replace(leave, leave_id=self._holidays.add_paid_leave(leave))
        logger.info("Paid leave %s for user %s on %s (%.2fh)", leave.leave_id, uid, leave_date, leave.hours)
        return leave

    def update_paid_leave(self, *, current_role: Role, leave_id: int, changes: dict) -> PaidLeave:
        """Apply the keys present in ``changes``: date, hours, reason, is_approved."""

        self._require_admin(current_role)
        leave = self._holidays.get_paid_leave(int(leave_id))
        if not leave:
            raise NotFoundError(f"Paid leave {leave_id} does not exist")

        if "date" in changes:
            leave_date = parse_optional_date(changes["date"], "date")
            if leave_date is None:
                raise ValidationError("Leave date is required")
            leave = replace(leave, leave_date=leave_date)
        if "hours" in changes:
            leave = replace(leave, hours=_leave_hours(changes["hours"]))
        if "reason" in changes:
            leave = replace(leave, reason=optional_text(changes["reason"], "Reason", max_length=255))
        if "is_approved" in changes:
            approved = optional_bool(changes["is_approved"], "is_approved")
            leave = replace(leave, is_approved=leave.is_approved if approved is None else approved)

        self._check_leave_clash(leave)
        if not self._holidays.update_paid_leave(leave):
            raise NotFoundError(f"Paid leave {leave_id} does not exist")
        logger.info("Paid leave %s updated (approved=%s)", leave.leave_id, leave.is_approved)
        return leave

    def delete_paid_leave(self, *, current_role: Role, leave_id: int) -> None:
        self._require_admin(current_role)
        if not self._holidays.delete_paid_leave(int(leave_id)):
            raise NotFoundError(f"Paid leave {leave_id} does not exist")
        logger.info("Paid leave %s deleted", leave_id)
