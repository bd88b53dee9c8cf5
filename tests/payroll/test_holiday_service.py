from __future__ import annotations

from datetime import date

import pytest

from conftest import FakeHolidays, InMemorySalaries
from src.workpulse.workpulse.core.enums import Role
from src.workpulse.workpulse.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.workpulse.workpulse.payroll.service import HolidayService, SalaryService

MARCH_1 = date(2026, 3, 1)
MARCH_31 = date(2026, 3, 31)


@pytest.fixture
def holidays():
    return FakeHolidays()


@pytest.fixture
def service(holidays, users_repo):
    return HolidayService(holidays, users_repo)


def _holiday(service, **kwargs):
    fields = dict(current_role=Role.ADMIN, holiday_date=date(2026, 3, 20), name="Equinox")
    fields.update(kwargs)
    return service.add_holiday(**fields)


def test_add_holiday_defaults(service):
    holiday = _holiday(service, name="  Equinox  ")

    assert holiday.holiday_id > 0
    assert holiday.name == "Equinox"
    assert holiday.is_paid is True
    assert holiday.dept_id is None
    assert holiday.credit_hours is None
    assert service.list_holidays() == [holiday]


def test_add_holiday_admin_only(service):
    with pytest.raises(AuthorizationError):
        _holiday(service, current_role=Role.MANAGER)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"holiday_date": None},
        {"name": "   "},
        {"name": 12},
        {"credit_hours": 25},
        {"credit_hours": -1},
        {"is_paid": "yes"},
        {"dept_id": "sales"},
    ],
)
def test_add_holiday_rejects_bad_input(service, kwargs):
    with pytest.raises(ValidationError):
        _holiday(service, **kwargs)


def test_same_day_holiday_only_once_per_scope(service):
    _holiday(service)
    _holiday(service, dept_id=2, name="Sales offsite")

    with pytest.raises(ValidationError):
        _holiday(service, name="Duplicate")
    assert len(service.list_holidays(start=MARCH_1, end=MARCH_31)) == 2


def test_update_holiday_applies_only_given_fields(service):
    holiday = _holiday(service, dept_id=2, credit_hours=4)

    updated = service.update_holiday(
        current_role=Role.ADMIN,
        holiday_id=holiday.holiday_id,
        changes={"date": "2026-03-21", "dept_id": None},
    )

    assert updated.holiday_date == date(2026, 3, 21)
    assert updated.dept_id is None
    assert updated.credit_hours == 4
    assert updated.name == "Equinox"


def test_update_and_delete_unknown_holiday(service):
    with pytest.raises(NotFoundError):
        service.update_holiday(current_role=Role.ADMIN, holiday_id=99, changes={"name": "x"})
    with pytest.raises(NotFoundError):
        service.delete_holiday(current_role=Role.ADMIN, holiday_id=99)


def test_delete_holiday(service):
    holiday = _holiday(service)

    service.delete_holiday(current_role=Role.ADMIN, holiday_id=holiday.holiday_id)

    assert service.list_holidays() == []


def test_add_paid_leave(service):
    leave = service.add_paid_leave(
        current_role=Role.ADMIN,
        user_id=1,
        leave_date=date(2026, 3, 10),
        hours="4",
        reason=" dentist ",
    )

    assert leave.hours == 4.0
    assert leave.reason == "dentist"
    assert leave.is_approved is False
    assert service.list_paid_leaves(user_id=1) == [leave]
    assert service.list_paid_leaves(user_id=2) == []


@pytest.mark.parametrize(
    "kwargs, error",
    [
        ({"user_id": None}, ValidationError),
        ({"user_id": 42}, NotFoundError),
        ({"leave_date": None}, ValidationError),
        ({"hours": 0}, ValidationError),
        ({"hours": 30}, ValidationError),
        ({"hours": None}, ValidationError),
        ({"is_approved": 1}, ValidationError),
    ],
)
def test_add_paid_leave_rejects_bad_input(service, kwargs, error):
    fields = dict(current_role=Role.ADMIN, user_id=1, leave_date=date(2026, 3, 10), hours=8)
    fields.update(kwargs)

    with pytest.raises(error):
        service.add_paid_leave(**fields)


def test_one_paid_leave_per_user_and_day(service):
    service.add_paid_leave(current_role=Role.ADMIN, user_id=1, leave_date=date(2026, 3, 10), hours=8)

    with pytest.raises(ValidationError):
        service.add_paid_leave(current_role=Role.ADMIN, user_id=1, leave_date=date(2026, 3, 10), hours=4)
    service.add_paid_leave(current_role=Role.ADMIN, user_id=2, leave_date=date(2026, 3, 10), hours=4)


def test_approve_and_delete_paid_leave(service):
    leave = service.add_paid_leave(current_role=Role.ADMIN, user_id=1, leave_date=date(2026, 3, 10), hours=8)

    approved = service.update_paid_leave(
        current_role=Role.ADMIN,
        leave_id=leave.leave_id,
        changes={"is_approved": True},
    )
    assert approved.is_approved is True
    assert approved.hours == 8.0

    service.delete_paid_leave(current_role=Role.ADMIN, leave_id=leave.leave_id)
    with pytest.raises(NotFoundError):
        service.delete_paid_leave(current_role=Role.ADMIN, leave_id=leave.leave_id)
    with pytest.raises(NotFoundError):
        service.update_paid_leave(current_role=Role.ADMIN, leave_id=leave.leave_id, changes={"hours": 2})


def test_paid_leave_admin_only(service):
    with pytest.raises(AuthorizationError):
        service.add_paid_leave(current_role=Role.STAFF, user_id=1, leave_date=date(2026, 3, 10), hours=8)


def test_list_rejects_inverted_range(service):
    with pytest.raises(ValidationError):
        service.list_holidays(start=MARCH_31, end=MARCH_1)
    with pytest.raises(ValidationError):
        service.list_paid_leaves(start=MARCH_31, end=MARCH_1)


def test_holidays_and_approved_leave_feed_salary(service, holidays, attendance_repo, users_repo):
    salary = SalaryService(attendance_repo, users_repo, holidays, InMemorySalaries())
    _holiday(service)
    _holiday(service, holiday_date=date(2026, 3, 21), name="Unpaid", is_paid=False)
    _holiday(service, holiday_date=date(2026, 3, 22), name="Other dept", dept_id=9)
    leave = service.add_paid_leave(current_role=Role.ADMIN, user_id=1, leave_date=date(2026, 3, 10), hours=4)

    assert salary.calculate(1, start=MARCH_1, end=MARCH_31).holiday_hours == 8.0

    service.update_paid_leave(current_role=Role.ADMIN, leave_id=leave.leave_id, changes={"is_approved": True})
    result = salary.calculate(1, start=MARCH_1, end=MARCH_31)

    assert result.holiday_hours == 12.0
    assert result.calculated_salary == 300.0
