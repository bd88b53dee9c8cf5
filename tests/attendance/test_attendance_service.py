from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from src.workpulse.workpulse.attendance.reconciliation import ReconciliationEngine, ReconciliationPolicy
from src.workpulse.workpulse.attendance.service import AttendanceService
from src.workpulse.workpulse.core.enums import AttendanceStatus, MergeCase, Role
from src.workpulse.workpulse.core.exceptions import AuthorizationError, NotFoundError, ValidationError


class FakeGeocoder:
    def __init__(self):
        self.calls = []

    def label(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        return "221B Baker Street, London"


@pytest.fixture
def service(attendance_repo, users_repo, shifts_repo):
    return AttendanceService(attendance_repo, users_repo, shifts_repo)


def test_start_day_records_app_punch_and_reconciles(service, attendance_repo, fixed_now):
    rec = service.start_day(1, now=fixed_now)

    assert rec.app_punch.punch_in == fixed_now
    assert rec.merge_case == MergeCase.NO_OUT
    assert rec.needs_review is True
    assert rec.status == AttendanceStatus.PRESENT
    assert attendance_repo.get_for_user_and_date(1, fixed_now.date()).merge_case == MergeCase.NO_OUT


def test_start_day_twice_rejected(service, fixed_now):
    service.start_day(1, now=fixed_now)

    with pytest.raises(ValidationError):
        service.start_day(1, now=fixed_now + timedelta(minutes=5))


def test_start_day_unknown_user(service, fixed_now):
    with pytest.raises(NotFoundError):
        service.start_day(99, now=fixed_now)


def test_start_day_labels_location_with_geocoder(attendance_repo, users_repo, shifts_repo, fixed_now):
    geocoder = FakeGeocoder()
    svc = AttendanceService(attendance_repo, users_repo, shifts_repo, geocoder=geocoder)

    rec = svc.start_day(1, now=fixed_now, latitude=51.5237, longitude=-0.1585)

    assert geocoder.calls == [(51.5237, -0.1585)]
    assert rec.location_label == "221B Baker Street, London"


def test_start_day_without_geocoder_uses_coordinates(service, fixed_now):
    rec = service.start_day(1, now=fixed_now, latitude="12.5", longitude="77.25")

    assert rec.location_label == "12.500000, 77.250000"


def test_start_day_rejects_bad_latitude(service, fixed_now):
    with pytest.raises(ValidationError):
        service.start_day(1, now=fixed_now, latitude=120, longitude=0)


def test_end_day_completes_app_pair(service, fixed_now):
    service.start_day(1, now=fixed_now)

    rec = service.end_day(1, now=fixed_now.replace(hour=17, minute=30))

    assert rec.merge_case == MergeCase.WF_ONLY
    assert rec.remarks == "BIO_MISSING"
    assert rec.final_times.worked_hours == 8.5
    assert rec.status == AttendanceStatus.PRESENT
    assert rec.needs_review is False


def test_end_day_without_start_rejected(service, fixed_now):
    with pytest.raises(ValidationError):
        service.end_day(1, now=fixed_now)


def test_end_day_twice_rejected(service, fixed_now):
    service.start_day(1, now=fixed_now)
    service.end_day(1, now=fixed_now.replace(hour=17))

    with pytest.raises(ValidationError):
        service.end_day(1, now=fixed_now.replace(hour=18))


def test_biometric_import_merges_with_app_punch(service, attendance_repo, fixed_now):
    service.start_day(1, now=fixed_now)
    service.end_day(1, now=fixed_now.replace(hour=17, minute=30))

    result = service.import_biometric_rows(
        [{"name": "User 1", "employee_code": "EMP001", "date": "2026-03-02", "time_in": "09:15", "time_out": "17:35"}]
    )

    assert result.as_dict() == {"processed": 1, "created": 0, "updated": 1, "errors": []}
    rec = attendance_repo.get_for_user_and_date(1, date(2026, 3, 2))
    assert rec.merge_case == MergeCase.BOTH_MATCHED
    assert rec.final_times.final_in == datetime(2026, 3, 2, 9, 15)
    assert rec.final_times.worked_hours == 8.33
    assert rec.status == AttendanceStatus.LATE
    # app punch untouched by the biometric write
    assert rec.app_punch.punch_in == fixed_now


def test_biometric_import_reports_bad_rows_and_continues(service):
    result = service.import_biometric_rows(
        [
            {"employee_code": "NOPE", "date": "2026-03-02", "time_in": "09:00", "time_out": "17:00"},
            {"employee_code": "EMP001", "date": "02/03/2026", "time_in": "09:00", "time_out": "17:00"},
            {"employee_code": "EMP001", "date": "2026-03-03", "time_in": "nine", "time_out": "17:00"},
            {"employee_code": "EMP001", "date": "2026-03-04", "time_in": "", "time_out": ""},
            {"employee_code": "EMP001", "date": "2026-03-05", "time_in": "9:00 AM", "time_out": "5:00 PM"},
        ]
    )

    assert result.processed == 5
    assert result.created == 1
    assert [e["row"] for e in result.errors] == [0, 1, 2, 3]


def test_biometric_import_non_string_time_is_a_row_error(service):
    result = service.import_biometric_rows(
        [
            {"employee_code": "EMP001", "date": "2026-03-02", "time_in": "09:00", "time_out": "17:00"},
            {"employee_code": "EMP001", "date": "2026-03-03", "time_in": 900, "time_out": "17:00"},
            {"employee_code": "EMP001", "date": "2026-03-04", "time_in": "09:00", "time_out": "17:00"},
            {"employee_code": "EMP001", "date": 20260305, "time_in": "09:00", "time_out": "17:00"},
        ]
    )

    assert result.processed == 4
    assert result.created == 2
    assert [e["row"] for e in result.errors] == [1, 3]


def test_biometric_import_non_object_row_is_a_row_error(service):
    result = service.import_biometric_rows(
        ["garbage", {"employee_code": "EMP001", "date": "2026-03-02", "time_in": "09:00", "time_out": "17:00"}]
    )

    assert result.processed == 2
    assert result.created == 1
    assert result.errors == [{"row": 0, "employee_code": None, "error": "Row must be an object"}]


def test_biometric_import_night_shift_crosses_midnight(service, attendance_repo):
    service.import_biometric_rows(
        [{"employee_code": "EMP001", "date": "2026-03-02", "time_in": "22:00", "time_out": "06:00"}]
    )

    rec = attendance_repo.get_for_user_and_date(1, date(2026, 3, 2))
    assert rec.biometric_punch.punch_out == datetime(2026, 3, 3, 6, 0)
    assert rec.final_times.worked_hours == 8.0


def test_record_biometric_punch_rejects_out_before_in(service):
    with pytest.raises(ValidationError):
        service.record_biometric_punch(
            user_id=1,
            work_date=date(2026, 3, 2),
            punch_in=datetime(2026, 3, 2, 17),
            punch_out=datetime(2026, 3, 2, 9),
        )


def test_reconcile_range_is_idempotent(service, attendance_repo, fixed_now):
    service.start_day(1, now=fixed_now)
    service.end_day(1, now=fixed_now.replace(hour=18))
    service.record_biometric_punch(
        user_id=1,
        work_date=fixed_now.date(),
        punch_in=fixed_now,
        punch_out=fixed_now.replace(hour=20),
    )
    before = attendance_repo.get_for_user_and_date(1, fixed_now.date())

    summary = service.reconcile_range(start=fixed_now.date(), end=fixed_now.date())

    assert summary == {"reconciled": 1, "cases": {"BOTH_MISMATCH": 1}}
    assert attendance_repo.get_for_user_and_date(1, fixed_now.date()) == before


def test_reconcile_uses_configured_tolerance(attendance_repo, users_repo, shifts_repo, fixed_now):
    engine = ReconciliationEngine(ReconciliationPolicy(tolerance_minutes=180))
    svc = AttendanceService(attendance_repo, users_repo, shifts_repo, engine=engine)
    svc.start_day(1, now=fixed_now)
    svc.end_day(1, now=fixed_now.replace(hour=18))

    svc.record_biometric_punch(
        user_id=1, work_date=fixed_now.date(), punch_in=fixed_now, punch_out=fixed_now.replace(hour=20)
    )

    assert attendance_repo.get_for_user_and_date(1, fixed_now.date()).merge_case == MergeCase.BOTH_MATCHED


def test_reconcile_leaves_manual_override_alone(service, attendance_repo, fixed_now):
    service.start_day(1, now=fixed_now)
    rec = attendance_repo.get_for_user_and_date(1, fixed_now.date())
    attendance_repo.apply_manual_override(
        attendance_id=rec.attendance_id,
        final_in=fixed_now,
        final_out=fixed_now.replace(hour=17),
        worked_hours=8.0,
        note="fixed by admin",
    )

    service.end_day(1, now=fixed_now.replace(hour=19))

    after = attendance_repo.get_for_user_and_date(1, fixed_now.date())
    assert after.final_times.worked_hours == 8.0
    assert after.app_punch.punch_out == fixed_now.replace(hour=19)


def test_mark_status_on_leave_survives_reconciliation(service, attendance_repo):
    day = date(2026, 3, 3)

    rec = service.mark_status(current_role=Role.ADMIN, user_id=1, work_date=day, status=AttendanceStatus.ON_LEAVE)
    service.reconcile_day(1, day)

    assert rec.status == AttendanceStatus.ON_LEAVE
    assert attendance_repo.get_for_user_and_date(1, day).status == AttendanceStatus.ON_LEAVE


def test_mark_status_requires_admin_or_manager(service):
    with pytest.raises(AuthorizationError):
        service.mark_status(
            current_role=Role.STAFF, user_id=1, work_date=date(2026, 3, 3), status=AttendanceStatus.HOLIDAY
        )


def test_mark_record_status_unknown_record(service):
    with pytest.raises(NotFoundError):
        service.mark_record_status(current_role=Role.ADMIN, attendance_id=42, status=AttendanceStatus.ABSENT)


def test_list_for_review_only_returns_flagged_days(service, fixed_now):
    service.start_day(1, now=fixed_now)
    service.start_day(1, now=fixed_now + timedelta(days=1))
    service.end_day(1, now=fixed_now + timedelta(days=1, hours=8))

    rows = service.list_for_review(start=fixed_now.date(), end=fixed_now.date() + timedelta(days=1))

    assert [r.work_date for r in rows] == [fixed_now.date()]


def test_history_ui(service, fixed_now):
    service.start_day(1, now=fixed_now)

    history = service.get_history_ui(1)

    assert history[0]["date"] == "2026-03-02"
    assert history[0]["check_in"] == "09:00:00"
    assert history[0]["check_out"] == "-"
    assert history[0]["remarks"] == "NO_PUNCH_OUT"


def test_purge_record(service, attendance_repo, fixed_now):
    rec = service.start_day(1, now=fixed_now)

    with pytest.raises(AuthorizationError):
        service.purge_record(current_role=Role.MANAGER, attendance_id=rec.attendance_id)
    service.purge_record(current_role=Role.ADMIN, attendance_id=rec.attendance_id)

    assert attendance_repo.get_for_user_and_date(1, fixed_now.date()) is None
    with pytest.raises(NotFoundError):
        service.purge_record(current_role=Role.ADMIN, attendance_id=rec.attendance_id)
