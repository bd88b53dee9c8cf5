from __future__ import annotations

import csv
import io
from datetime import date, timedelta

from flask import Flask

from ..common.datetime_utils import parse_iso_datetime, parse_optional_date
from ..common.web import (
    current_role,
    current_user_id,
    date_range_args,
    json_body,
    json_errors,
    login_required,
    ok,
    optional_int_arg,
    roles_required,
)
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import ValidationError
from ..container import Container
from .model import DailyAttendanceRecord

_REPORT_FIELDS = [
    "work_date",
    "user_id",
    "full_name",
    "username",
    "dept_name",
    "app_in",
    "app_out",
    "bio_in",
    "bio_out",
    "final_in",
    "final_out",
    "worked_hours",
    "merge_case",
    "remarks",
    "status",
    "needs_review",
    "note",
]


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def record_to_dict(r: DailyAttendanceRecord) -> dict:
    diffs = r.time_differences
    return {
        "attendance_id": r.attendance_id,
        "user_id": r.user_id,
        "date": r.work_date.isoformat(),
        "app_punch": {"punch_in": _iso(r.app_punch.punch_in), "punch_out": _iso(r.app_punch.punch_out)},
        "biometric_punch": {
            "punch_in": _iso(r.biometric_punch.punch_in),
            "punch_out": _iso(r.biometric_punch.punch_out),
        },
        "final_times": {
            "final_in": _iso(r.final_times.final_in),
            "final_out": _iso(r.final_times.final_out),
            "worked_hours": r.final_times.worked_hours,
        },
        "merge_case": r.merge_case.value if r.merge_case else None,
        "remarks": r.remarks,
        "status": r.status.value,
        "needs_review": r.needs_review,
        "time_differences": (
            {
                "in_diff_minutes": diffs.in_diff_minutes,
                "out_diff_minutes": diffs.out_diff_minutes,
                "in_within_tolerance": diffs.in_within_tolerance,
                "out_within_tolerance": diffs.out_within_tolerance,
            }
            if diffs
            else None
        ),
        "is_manual_override": r.is_manual_override,
        "location_label": r.location_label,
        "note": r.note,
    }


def register(app: Flask, container: Container) -> None:
    def _write_report_csv(*, data, filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=_REPORT_FIELDS)
        writer.writeheader()
        for row in data.rows:
            writer.writerow({k: row.get(k, "") for k in _REPORT_FIELDS})

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/attendance/start-day", methods=["POST"], endpoint="attendance_start_day")
    @login_required
    @json_errors
    def start_day():
        data = json_body()
        record = container.attendance_service.start_day(
            current_user_id(),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
        )
        return ok({"message": "Day started", "record": record_to_dict(record)})

    @app.route("/api/attendance/end-day", methods=["POST"], endpoint="attendance_end_day")
    @login_required
    @json_errors
    def end_day():
        record = container.attendance_service.end_day(current_user_id())
        return ok({"message": "Day ended", "record": record_to_dict(record)})

    @app.route("/api/attendance/history", methods=["GET"], endpoint="attendance_history")
    @login_required
    @json_errors
    def history():
        return ok({"data": container.attendance_service.get_history_ui(current_user_id())})

    @app.route("/api/attendance/biometric/import", methods=["POST"], endpoint="attendance_biometric_import")
    @roles_required(Role.ADMIN)
    @json_errors
    def biometric_import():
        rows = json_body().get("rows")
        if not isinstance(rows, list) or not rows:
            raise ValidationError("rows must be a non-empty list")
        result = container.attendance_service.import_biometric_rows(rows)
        return ok({"data": result.as_dict()})

    @app.route("/api/attendance/biometric", methods=["POST"], endpoint="attendance_biometric_punch")
    @roles_required(Role.ADMIN)
    @json_errors
    def biometric_punch():
        data = json_body()
        work_date = parse_optional_date(data.get("date"), "date")
        if work_date is None:
            raise ValidationError("date is required")
        try:
            user_id = int(data.get("user_id"))
        except (TypeError, ValueError):
            raise ValidationError("user_id is required")

        record, created = container.attendance_service.record_biometric_punch(
            user_id=user_id,
            work_date=work_date,
            punch_in=parse_iso_datetime(data.get("punch_in")),
            punch_out=parse_iso_datetime(data.get("punch_out")),
        )
        return ok({"created": created, "record": record_to_dict(record)}, 201 if created else 200)

    @app.route("/api/attendance/reconcile", methods=["POST"], endpoint="attendance_reconcile")
    @roles_required(Role.ADMIN, Role.MANAGER)
    @json_errors
    def reconcile():
        data = json_body()
        start = parse_optional_date(data.get("start"), "start")
        end = parse_optional_date(data.get("end"), "end") or start
        if start is None:
            raise ValidationError("start is required")
        user_id = data.get("user_id")
        result = container.attendance_service.reconcile_range(
            start=start,
            end=end,
            user_id=int(user_id) if user_id not in (None, "") else None,
        )
        return ok({"data": result})

    @app.route("/api/attendance/records", methods=["GET"], endpoint="attendance_records")
    @login_required
    @json_errors
    def records():
        today = date.today()
        start, end = date_range_args(default_start=today.replace(day=1), default_end=today)
        user_id = optional_int_arg("user_id")
        dept_id = optional_int_arg("dept_id")

        # Staff only ever see their own days.
        if current_role() == Role.STAFF:
            user_id = current_user_id()
            dept_id = None

        rows = container.attendance_service.list_records(start=start, end=end, user_id=user_id, dept_id=dept_id)
        return ok({"data": [record_to_dict(r) for r in rows]})

    @app.route("/api/attendance/review", methods=["GET"], endpoint="attendance_review")
    @roles_required(Role.ADMIN, Role.MANAGER)
    @json_errors
    def review():
        today = date.today()
        start, end = date_range_args(default_start=today - timedelta(days=7), default_end=today)
        rows = container.attendance_service.list_for_review(start=start, end=end, dept_id=optional_int_arg("dept_id"))
        return ok({"data": [record_to_dict(r) for r in rows]})

    @app.route("/api/attendance/<int:attendance_id>/status", methods=["PUT"], endpoint="attendance_set_status")
    @roles_required(Role.ADMIN, Role.MANAGER)
    @json_errors
    def set_status(attendance_id: int):
        data = json_body()
        try:
            status = AttendanceStatus(data.get("status"))
        except ValueError:
            raise ValidationError(f"Unknown status: {data.get('status')!r}")

        record = container.attendance_service.mark_record_status(
            current_role=current_role(),
            attendance_id=attendance_id,
            status=status,
            note=data.get("note"),
        )
        return ok({"record": record_to_dict(record)})

    @app.route("/api/attendance/<int:attendance_id>", methods=["DELETE"], endpoint="attendance_purge")
    @roles_required(Role.ADMIN)
    @json_errors
    def purge(attendance_id: int):
        container.attendance_service.purge_record(current_role=current_role(), attendance_id=attendance_id)
        return ok({"message": "Attendance record deleted"})

    @app.route("/api/attendance/report.csv", methods=["GET"], endpoint="attendance_report_csv")
    @roles_required(Role.ADMIN, Role.MANAGER)
    @json_errors
    def report_csv():
        today = date.today()
        start, end = date_range_args(default_start=today.replace(day=1), default_end=today)
        data = container.payroll_report_service.build_attendance_report(
            start=start,
            end=end,
            user_id=optional_int_arg("user_id"),
            dept_id=optional_int_arg("dept_id"),
        )
        filename = f"attendance_report_{start.strftime('%Y%m%d')}_{end.strftime('%Y%m%d')}.csv"
        return _write_report_csv(data=data, filename=filename)
