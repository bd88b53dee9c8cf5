from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from src.workpulse.workpulse.attendance.model import DailyAttendanceRecord, PunchPair
from src.workpulse.workpulse.core.enums import Role
from src.workpulse.workpulse.core.exceptions import ArchiveError
from src.workpulse.workpulse.payroll.model import HolidayCredit, SalaryBucket
from src.workpulse.workpulse.shifts.model import Shift
from src.workpulse.workpulse.users.model import User


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 2, 9, 0, 0)


def make_user(user_id: int = 1, *, role: Role = Role.STAFF, hourly_rate: float = 25.0, **kwargs) -> User:
    defaults = dict(
        full_name=f"User {user_id}",
        username=f"user{user_id}",
        password_hash=generate_password_hash("pw"),
        dept_id=1,
        shift_id=1,
        employee_code=f"EMP{user_id:03d}",
    )
    defaults.update(kwargs)
    return User(user_id=user_id, role=role, hourly_rate=hourly_rate, **defaults)


class InMemoryUsers:
    def __init__(self, users: list[User]):
        self._users = {u.user_id: u for u in users}

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self._users.values() if u.username == username), None)

    def get_by_employee_code(self, employee_code: str) -> Optional[User]:
        return next((u for u in self._users.values() if u.employee_code == employee_code), None)

    def list_active(self, *, dept_id: Optional[int] = None):
        return [u for u in self._users.values() if u.is_active and (dept_id is None or u.dept_id == dept_id)]

    def set_hourly_rate(self, user_id: int, *, hourly_rate: float) -> bool:
        if user_id not in self._users:
            return False
        self._users[user_id] = replace(self._users[user_id], hourly_rate=hourly_rate)
        return True

    def set_employee_code(self, user_id: int, *, employee_code: Optional[str]) -> bool:
        if user_id not in self._users:
            return False
        self._users[user_id] = replace(self._users[user_id], employee_code=employee_code)
        return True


class InMemoryShifts:
    def __init__(self, shifts: list[Shift]):
        self._shifts = {s.shift_id: s for s in shifts}

    def get_by_id(self, shift_id: int) -> Optional[Shift]:
        return self._shifts.get(shift_id)


class InMemoryAttendance:
    """Mirrors the MySQL repository: one row per (user, date), disjoint app/biometric writes."""

    def __init__(self):
        self._rows: dict[tuple[int, date], DailyAttendanceRecord] = {}
        self._id = 0

    def _by_id(self, attendance_id: int) -> Optional[tuple[tuple[int, date], DailyAttendanceRecord]]:
        for key, rec in self._rows.items():
            if rec.attendance_id == attendance_id:
                return key, rec
        return None

    def get_by_id(self, attendance_id: int):
        found = self._by_id(attendance_id)
        return found[1] if found else None

    def get_for_user_and_date(self, user_id: int, work_date: date):
        return self._rows.get((user_id, work_date))

    def _ensure(self, user_id: int, work_date: date) -> tuple[DailyAttendanceRecord, bool]:
        key = (user_id, work_date)
        if key in self._rows:
            return self._rows[key], False
        self._id += 1
        rec = DailyAttendanceRecord(attendance_id=self._id, user_id=user_id, work_date=work_date)
        self._rows[key] = rec
        return rec, True

    def upsert_app_punch(self, *, user_id, work_date, punch_in=None, punch_out=None, location_label=None):
        rec, created = self._ensure(user_id, work_date)
        app = PunchPair(punch_in=punch_in or rec.app_punch.punch_in, punch_out=punch_out or rec.app_punch.punch_out)
        self._rows[(user_id, work_date)] = replace(
            rec, app_punch=app, location_label=location_label or rec.location_label
        )
        return rec.attendance_id, created

    def upsert_biometric_punch(self, *, user_id, work_date, punch_in, punch_out):
        rec, created = self._ensure(user_id, work_date)
        self._rows[(user_id, work_date)] = replace(rec, biometric_punch=PunchPair(punch_in, punch_out))
        return rec.attendance_id, created

    def save_reconciliation(self, *, attendance_id, day):
        key, rec = self._by_id(attendance_id)
        if rec.is_manual_override:
            return False
        outcome = day.outcome
        self._rows[key] = replace(
            rec,
            final_times=outcome.final_times,
            merge_case=outcome.merge_case,
            remarks=outcome.remarks,
            status=day.status,
            needs_review=outcome.needs_review,
            time_differences=outcome.time_differences,
            note=day.note or rec.note,
        )
        return True

    def apply_manual_override(self, *, attendance_id, final_in, final_out, worked_hours, note=None):
        key, rec = self._by_id(attendance_id)
        self._rows[key] = replace(
            rec,
            final_times=replace(rec.final_times, final_in=final_in, final_out=final_out, worked_hours=worked_hours),
            is_manual_override=True,
            needs_review=False,
            note=note,
        )
        return True

    def set_status(self, *, attendance_id, status, note=None):
        key, rec = self._by_id(attendance_id)
        self._rows[key] = replace(rec, status=status, note=note or rec.note)
        return True

    def list_range(self, *, start_date, end_date, user_id=None, dept_id=None):
        rows = [
            r
            for r in self._rows.values()
            if start_date <= r.work_date <= end_date and (user_id is None or r.user_id == user_id)
        ]
        return sorted(rows, key=lambda r: (r.work_date, r.user_id))

    def list_for_review(self, *, start_date, end_date, dept_id=None):
        return [r for r in self.list_range(start_date=start_date, end_date=end_date) if r.needs_review]

    def get_recent_for_user(self, user_id, limit):
        rows = [r for r in self._rows.values() if r.user_id == user_id]
        rows.sort(key=lambda r: r.work_date, reverse=True)
        return rows[:limit]

    def purge(self, attendance_id):
        found = self._by_id(attendance_id)
        if not found:
            return False
        del self._rows[found[0]]
        return True


class FakeHolidays:
    """Static credits plus in-memory holiday and paid-leave tables."""

    def __init__(self, credits=(), *, default_hours=8.0):
        self._credits = list(credits)
        self._default_hours = default_hours
        self.holidays = {}
        self.leaves = {}
        self._next_id = 1

    def credits_for_user(self, *, user_id, dept_id, start, end):
        credits = [c for c in self._credits if start <= c.credit_date <= end]
        for h in self.holidays.values():
            if h.is_paid and start <= h.holiday_date <= end and h.dept_id in (None, dept_id):
                hours = self._default_hours if h.credit_hours is None else h.credit_hours
                credits.append(HolidayCredit(h.holiday_date, hours, "HOLIDAY", h.name))
        for lv in self.leaves.values():
            if lv.user_id == user_id and lv.is_approved and start <= lv.leave_date <= end:
                credits.append(HolidayCredit(lv.leave_date, lv.hours, "PAID_LEAVE", lv.reason or ""))
        return credits

    def _new_id(self):
        self._next_id += 1
        return self._next_id - 1

    def list_holidays(self, *, start=None, end=None):
        rows = [
            h
            for h in self.holidays.values()
            if (start is None or h.holiday_date >= start) and (end is None or h.holiday_date <= end)
        ]
        return sorted(rows, key=lambda h: (h.holiday_date, h.holiday_id))

    def get_holiday(self, holiday_id):
        return self.holidays.get(holiday_id)

    def add_holiday(self, holiday):
        holiday_id = self._new_id()
        self.holidays[holiday_id] = replace(holiday, holiday_id=holiday_id)
        return holiday_id

    def update_holiday(self, holiday):
        if holiday.holiday_id not in self.holidays:
            return False
        self.holidays[holiday.holiday_id] = holiday
        return True

    def delete_holiday(self, holiday_id):
        return self.holidays.pop(holiday_id, None) is not None

    def list_paid_leaves(self, *, user_id=None, start=None, end=None):
        rows = [
            lv
            for lv in self.leaves.values()
            if (user_id is None or lv.user_id == user_id)
            and (start is None or lv.leave_date >= start)
            and (end is None or lv.leave_date <= end)
        ]
        return sorted(rows, key=lambda lv: (lv.leave_date, lv.leave_id))

    def get_paid_leave(self, leave_id):
        return self.leaves.get(leave_id)

    def add_paid_leave(self, leave):
        leave_id = self._new_id()
        self.leaves[leave_id] = replace(leave, leave_id=leave_id)
        return leave_id

    def update_paid_leave(self, leave):
        if leave.leave_id not in self.leaves:
            return False
        self.leaves[leave.leave_id] = leave
        return True

    def delete_paid_leave(self, leave_id):
        return self.leaves.pop(leave_id, None) is not None


class InMemorySalaries:
    def __init__(self):
        self.confirmed = {}
        self.buckets = {}
        self.fail_archive = False
        self._next_id = 0

    def add_confirmed(self, record):
        self._next_id += 1
        self.confirmed[self._next_id] = replace(record, record_id=self._next_id)
        return self._next_id

    def get_confirmed(self, record_id):
        return self.confirmed.get(record_id)

    def list_confirmed(self, *, user_id=None):
        return [r for r in self.confirmed.values() if user_id is None or r.user_id == user_id]

    def update_confirmed(self, record_id, *, per_hour_rate, confirmed_salary, confirmation_notes):
        if record_id not in self.confirmed:
            return False
        self.confirmed[record_id] = replace(
            self.confirmed[record_id],
            per_hour_rate=per_hour_rate,
            confirmed_salary=confirmed_salary,
            confirmation_notes=confirmation_notes,
        )
        return True

    def delete_confirmed(self, record_id):
        return self.confirmed.pop(record_id, None) is not None

    def archive_bucket(self, *, name, created_by, record_ids):
        if self.fail_archive:
            raise ArchiveError("Archiving failed; no records were moved")
        entries = tuple(self.confirmed[i] for i in record_ids)
        bucket_id = len(self.buckets) + 1
        self.buckets[bucket_id] = SalaryBucket(
            bucket_id=bucket_id,
            name=name,
            created_by=created_by,
            created_at=datetime(2026, 4, 1, 10, 0),
            record_count=len(entries),
            total_amount=round(sum(e.confirmed_salary for e in entries), 2),
            entries=entries,
        )
        for i in record_ids:
            del self.confirmed[i]
        return bucket_id

    def list_buckets(self):
        return list(self.buckets.values())

    def get_bucket(self, bucket_id):
        return self.buckets.get(bucket_id)


class InMemoryPrana:
    def __init__(self):
        self.samples = []

    def add(self, sample):
        stored = replace(sample, activity_id=len(self.samples) + 1)
        self.samples.append(stored)
        return stored.activity_id

    def list_for_user(self, user_id, *, start, end, limit=None):
        rows = [s for s in self.samples if s.user_id == user_id and start <= s.timestamp < end]
        rows.sort(key=lambda s: (s.timestamp, s.activity_id), reverse=True)
        return rows[:limit] if limit else rows

    def latest_for_user(self, user_id):
        rows = [s for s in self.samples if s.user_id == user_id]
        return max(rows, key=lambda s: s.activity_id) if rows else None

    def latest_per_user(self, *, since):
        latest = {}
        for s in self.samples:
            if s.timestamp >= since:
                latest[s.user_id] = s
        return list(latest.values())


@pytest.fixture
def general_shift() -> Shift:
    return Shift(shift_id=1, shift_name="General", start_time=time(9, 0), end_time=time(18, 0), break_minutes=60)


@pytest.fixture
def staff_user() -> User:
    return make_user(1)


@pytest.fixture
def users_repo(staff_user) -> InMemoryUsers:
    return InMemoryUsers([staff_user, make_user(2, role=Role.ADMIN, hourly_rate=0.0)])


@pytest.fixture
def shifts_repo(general_shift) -> InMemoryShifts:
    return InMemoryShifts([general_shift])


@pytest.fixture
def attendance_repo() -> InMemoryAttendance:
    return InMemoryAttendance()
