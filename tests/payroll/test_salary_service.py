from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta

import pytest

from conftest import FakeHolidays, InMemoryAttendance, InMemorySalaries, InMemoryUsers, make_user
from src.workpulse.workpulse.attendance.model import FinalTimes
from src.workpulse.workpulse.core.enums import MergeCase, Role
from src.workpulse.workpulse.core.exceptions import (
    ArchiveError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from src.workpulse.workpulse.payroll.model import HolidayCredit
from src.workpulse.workpulse.payroll.service import SalaryService

MARCH_1 = date(2026, 3, 1)
MARCH_31 = date(2026, 3, 31)


def _worked(attendance: InMemoryAttendance, user_id: int, day: int, hours: float):
    work_date = date(2026, 3, day)
    attendance._ensure(user_id, work_date)
    rec = attendance.get_for_user_and_date(user_id, work_date)
    attendance._rows[(user_id, work_date)] = replace(
        rec,
        final_times=FinalTimes(
            final_in=datetime(2026, 3, day, 9, 0),
            final_out=datetime(2026, 3, day, 9, 0) + timedelta(hours=hours),
            worked_hours=hours,
        ),
        merge_case=MergeCase.WF_ONLY,
    )


@pytest.fixture
def salaries():
    return InMemorySalaries()


@pytest.fixture
def service(attendance_repo, users_repo, salaries):
    for day in range(2, 24):
        _worked(attendance_repo, 1, day, 8.0)
    return SalaryService(attendance_repo, users_repo, FakeHolidays(), salaries)


def test_calculate_uses_employee_rate(service):
    result = service.calculate(1, start=MARCH_1, end=MARCH_31)

    assert result.hourly_rate == 25.0
    assert result.total_cumulative_hours == 176.0
    assert result.calculated_salary == 4400.0


def test_calculate_rate_override(service):
    result = service.calculate(1, start=MARCH_1, end=MARCH_31, hourly_rate="30")

    assert result.calculated_salary == 5280.0


def test_calculate_includes_holiday_credits(attendance_repo, users_repo, salaries):
    _worked(attendance_repo, 1, 2, 8.0)
    holidays = FakeHolidays([HolidayCredit(date(2026, 3, 20), 8.0, "HOLIDAY", "Equinox")])
    svc = SalaryService(attendance_repo, users_repo, holidays, salaries)

    result = svc.calculate(1, start=MARCH_1, end=MARCH_31)

    assert result.working_hours == 8.0
    assert result.holiday_hours == 8.0
    assert result.calculated_salary == 400.0


def test_calculate_unknown_user(service):
    with pytest.raises(NotFoundError):
        service.calculate(99, start=MARCH_1, end=MARCH_31)


def test_calculate_all_drops_breakdowns(service):
    rows = service.calculate_all(start=MARCH_1, end=MARCH_31)

    assert {r["user_id"] for r in rows} == {1, 2}
    assert "daily_breakdown" not in rows[0]
    assert rows[0]["employee_code"].startswith("EMP")


def test_confirm_defaults_to_calculated(service, salaries):
    record = service.confirm(
        current_role=Role.ADMIN, confirmed_by=2, user_id=1, start=MARCH_1, end=MARCH_31
    )

    assert record.record_id == 1
    assert record.confirmed_salary == 4400.0
    assert record.calculated_salary == 4400.0
    assert salaries.get_confirmed(1).confirmed_by == 2


def test_confirm_requires_admin(service):
    with pytest.raises(AuthorizationError):
        service.confirm(current_role=Role.MANAGER, confirmed_by=2, user_id=1, start=MARCH_1, end=MARCH_31)


def test_edit_rate_rederives_confirmed_amount(service):
    record = service.confirm(current_role=Role.ADMIN, confirmed_by=2, user_id=1, start=MARCH_1, end=MARCH_31)

    edited = service.update_confirmed(current_role=Role.ADMIN, record_id=record.record_id, per_hour_rate=30)

    assert edited.per_hour_rate == 30
    assert edited.confirmed_salary == 5280.0
    assert edited.calculated_salary == 4400.0


def test_edit_explicit_amount_wins_over_rate(service):
    record = service.confirm(current_role=Role.ADMIN, confirmed_by=2, user_id=1, start=MARCH_1, end=MARCH_31)

    edited = service.update_confirmed(
        current_role=Role.ADMIN,
        record_id=record.record_id,
        per_hour_rate=30,
        confirmed_salary=5000,
        confirmation_notes="  bonus agreed  ",
    )

    assert edited.confirmed_salary == 5000.0
    assert edited.confirmation_notes == "bonus agreed"
    assert edited.calculated_salary == 4400.0


def test_edit_with_unchanged_values_succeeds(service):
    record = service.confirm(current_role=Role.ADMIN, confirmed_by=2, user_id=1, start=MARCH_1, end=MARCH_31)
    service.update_confirmed(current_role=Role.ADMIN, record_id=record.record_id, confirmation_notes="ok")

    again = service.update_confirmed(current_role=Role.ADMIN, record_id=record.record_id, confirmation_notes="ok")

    assert again.confirmation_notes == "ok"
    assert again.confirmed_salary == record.confirmed_salary


def test_edit_unknown_record(service):
    with pytest.raises(NotFoundError):
        service.update_confirmed(current_role=Role.ADMIN, record_id=7, confirmed_salary=1)


def test_remove_confirmation(service, salaries):
    record = service.confirm(current_role=Role.ADMIN, confirmed_by=2, user_id=1, start=MARCH_1, end=MARCH_31)

    service.remove_confirmation(current_role=Role.ADMIN, record_id=record.record_id)

    assert salaries.list_confirmed() == []
    with pytest.raises(NotFoundError):
        service.remove_confirmation(current_role=Role.ADMIN, record_id=record.record_id)


def test_bucket_moves_all_selected_records(attendance_repo, salaries):
    users = InMemoryUsers([make_user(i) for i in range(1, 13)])
    for user_id in range(1, 13):
        _worked(attendance_repo, user_id, 2, 8.0)
    svc = SalaryService(attendance_repo, users, FakeHolidays(), salaries)
    ids = [
        svc.confirm(current_role=Role.ADMIN, confirmed_by=1, user_id=u, start=MARCH_1, end=MARCH_31).record_id
        for u in range(1, 13)
    ]

    bucket = svc.create_bucket(current_role=Role.ADMIN, record_ids=ids, created_by=1, name="March 2026")

    assert bucket.record_count == 12
    assert bucket.total_amount == 12 * 200.0
    assert len(bucket.entries) == 12
    assert svc.list_confirmed() == []
    assert [b.name for b in svc.list_buckets()] == ["March 2026"]


def test_bucket_default_name(service):
    record = service.confirm(current_role=Role.ADMIN, confirmed_by=2, user_id=1, start=MARCH_1, end=MARCH_31)

    bucket = service.create_bucket(current_role=Role.ADMIN, record_ids=[record.record_id], created_by=2)

    assert bucket.name.startswith("Payroll ")


@pytest.mark.parametrize(
    "record_ids, error",
    [
        ([], ValidationError),
        ([1, 1], ValidationError),
        (["x"], ValidationError),
        ([1, 42], NotFoundError),
    ],
)
def test_bucket_rejects_bad_selection_without_moving_anything(service, salaries, record_ids, error):
    service.confirm(current_role=Role.ADMIN, confirmed_by=2, user_id=1, start=MARCH_1, end=MARCH_31)

    with pytest.raises(error):
        service.create_bucket(current_role=Role.ADMIN, record_ids=record_ids, created_by=2)

    assert len(salaries.list_confirmed()) == 1
    assert salaries.list_buckets() == []


def test_bucket_failure_keeps_confirmed_records(service, salaries):
    record = service.confirm(current_role=Role.ADMIN, confirmed_by=2, user_id=1, start=MARCH_1, end=MARCH_31)
    salaries.fail_archive = True

    with pytest.raises(ArchiveError):
        service.create_bucket(current_role=Role.ADMIN, record_ids=[record.record_id], created_by=2)

    assert [r.record_id for r in salaries.list_confirmed()] == [record.record_id]


def test_get_bucket_unknown(service):
    with pytest.raises(NotFoundError):
        service.get_bucket(5)
