from __future__ import annotations

from datetime import date, datetime

from flask import Flask, render_template, request

from ..common.datetime_utils import parse_optional_date
from ..common.web import (
    current_role,
    current_user_id,
    date_range_args,
    fail,
    json_body,
    json_errors,
    login_required,
    ok,
    optional_int_arg,
    roles_required,
)
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..container import Container


def _month_to_date() -> tuple[date, date]:
    today = date.today()
    return today.replace(day=1), today


def register(app: Flask, container: Container) -> None:
    @app.route("/api/salary/calculate/<int:user_id>", methods=["GET"], endpoint="salary_calculate")
    @login_required
    @json_errors
    def calculate(user_id: int):
        if current_role() == Role.STAFF and user_id != current_user_id():
            return fail("You can only view your own salary", 403)

        start_d, end_d = _month_to_date()
        start, end = date_range_args(default_start=start_d, default_end=end_d)
        computation = container.salary_service.calculate(
            user_id,
            start=start,
            end=end,
            hourly_rate=request.args.get("hourly_rate") or None,
        )
        return ok({"data": computation.as_dict()})

    @app.route("/api/salary/dashboard", methods=["GET"], endpoint="salary_dashboard")
    @roles_required(Role.ADMIN, Role.MANAGER)
    @json_errors
    def dashboard():
        start_d, end_d = _month_to_date()
        start, end = date_range_args(default_start=start_d, default_end=end_d)
        rows = container.salary_service.calculate_all(start=start, end=end, dept_id=optional_int_arg("dept_id"))
        return ok(
            {
                "period": {"start": start.isoformat(), "end": end.isoformat()},
                "total_calculated": round(sum(r["calculated_salary"] for r in rows), 2),
                "data": rows,
            }
        )

    @app.route("/api/salary/confirm", methods=["POST"], endpoint="salary_confirm")
    @roles_required(Role.ADMIN)
    @json_errors
    def confirm():
        data = json_body()
        start = parse_optional_date(data.get("start"), "start")
        end = parse_optional_date(data.get("end"), "end")
        if start is None or end is None:
            raise ValidationError("start and end are required")
        try:
            user_id = int(data.get("user_id"))
        except (TypeError, ValueError):
            raise ValidationError("user_id is required")

        record = container.salary_service.confirm(
            current_role=current_role(),
            confirmed_by=current_user_id(),
            user_id=user_id,
            start=start,
            end=end,
            hourly_rate=data.get("hourly_rate"),
            confirmed_salary=data.get("confirmed_salary"),
            confirmation_notes=data.get("confirmation_notes"),
        )
        return ok({"message": "Salary confirmed", "data": record.as_dict()}, 201)

    @app.route("/api/salary/confirmed", methods=["GET"], endpoint="salary_confirmed_list")
    @roles_required(Role.ADMIN, Role.MANAGER)
    @json_errors
    def confirmed_list():
        records = container.salary_service.list_confirmed(user_id=optional_int_arg("user_id"))
        return ok({"data": [r.as_dict() for r in records]})

    @app.route("/api/salary/confirmed/<int:record_id>", methods=["PUT"], endpoint="salary_confirmed_update")
    @roles_required(Role.ADMIN)
    @json_errors
    def confirmed_update(record_id: int):
        data = json_body()
        record = container.salary_service.update_confirmed(
            current_role=current_role(),
            record_id=record_id,
            per_hour_rate=data.get("per_hour_rate"),
            confirmed_salary=data.get("confirmed_salary"),
            confirmation_notes=data.get("confirmation_notes"),
        )
        return ok({"data": record.as_dict()})

    @app.route("/api/salary/confirmed/<int:record_id>", methods=["DELETE"], endpoint="salary_confirmed_delete")
    @roles_required(Role.ADMIN)
    @json_errors
    def confirmed_delete(record_id: int):
        container.salary_service.remove_confirmation(current_role=current_role(), record_id=record_id)
        return ok({"message": "Confirmation removed"})

    @app.route("/api/salary/confirmed/report", methods=["GET"], endpoint="salary_confirmed_report")
    @roles_required(Role.ADMIN, Role.MANAGER)
    @json_errors
    def confirmed_report():
        records = container.salary_service.list_confirmed(user_id=optional_int_arg("user_id"))
        return render_template(
            "salary/confirmed_report.html",
            records=records,
            generated_at=datetime.now(),
            total_hours=round(sum(r.total_cumulative_hours for r in records), 2),
            total_calculated=round(sum(r.calculated_salary for r in records), 2),
            total_confirmed=round(sum(r.confirmed_salary for r in records), 2),
        )

    @app.route("/api/salary/history/create-bucket", methods=["POST"], endpoint="salary_create_bucket")
    @roles_required(Role.ADMIN)
    @json_errors
    def create_bucket():
        data = json_body()
        record_ids = data.get("record_ids", data.get("recordIds"))
        if not isinstance(record_ids, list):
            raise ValidationError("record_ids must be a list")

        bucket = container.salary_service.create_bucket(
            current_role=current_role(),
            record_ids=record_ids,
            created_by=current_user_id(),
            name=data.get("name"),
        )
        return ok({"message": "Salary bucket created", "data": bucket.as_dict(with_entries=True)}, 201)

    @app.route("/api/salary/history", methods=["GET"], endpoint="salary_history")
    @roles_required(Role.ADMIN, Role.MANAGER)
    @json_errors
    def history():
        return ok({"data": [b.as_dict() for b in container.salary_service.list_buckets()]})

    @app.route("/api/salary/history/<int:bucket_id>", methods=["GET"], endpoint="salary_history_bucket")
    @roles_required(Role.ADMIN, Role.MANAGER)
    @json_errors
    def history_bucket(bucket_id: int):
        bucket = container.salary_service.get_bucket(bucket_id)
        return ok({"data": bucket.as_dict(with_entries=True)})

    # ----- public holidays / paid leave -----

    def _period_args():
        start = parse_optional_date(request.args.get("start"), "start")
        end = parse_optional_date(request.args.get("end"), "end")
        return start, end

    @app.route("/api/salary/holidays", methods=["GET"], endpoint="salary_holidays")
    @roles_required(Role.ADMIN, Role.MANAGER)
    @json_errors
    def holidays():
        start, end = _period_args()
        rows = container.holiday_service.list_holidays(start=start, end=end)
        return ok({"data": [h.as_dict() for h in rows]})

    @app.route("/api/salary/holidays", methods=["POST"], endpoint="salary_holiday_create")
    @roles_required(Role.ADMIN)
    @json_errors
    def holiday_create():
        data = json_body()
        holiday = container.holiday_service.add_holiday(
            current_role=current_role(),
            holiday_date=parse_optional_date(data.get("date"), "date"),
            name=data.get("name"),
            dept_id=data.get("dept_id"),
            is_paid=data.get("is_paid"),
            credit_hours=data.get("credit_hours"),
        )
        return ok({"message": "Holiday added", "data": holiday.as_dict()}, 201)

    @app.route("/api/salary/holidays/<int:holiday_id>", methods=["PUT"], endpoint="salary_holiday_update")
    @roles_required(Role.ADMIN)
    @json_errors
    def holiday_update(holiday_id: int):
        holiday = container.holiday_service.update_holiday(
            current_role=current_role(),
            holiday_id=holiday_id,
            changes=json_body(),
        )
        return ok({"data": holiday.as_dict()})

    @app.route("/api/salary/holidays/<int:holiday_id>", methods=["DELETE"], endpoint="salary_holiday_delete")
    @roles_required(Role.ADMIN)
    @json_errors
    def holiday_delete(holiday_id: int):
        container.holiday_service.delete_holiday(current_role=current_role(), holiday_id=holiday_id)
        return ok({"message": "Holiday deleted"})

    @app.route("/api/salary/paid-leaves", methods=["GET"], endpoint="salary_paid_leaves")
    @login_required
    @json_errors
    def paid_leaves():
        start, end = _period_args()
        user_id = optional_int_arg("user_id")
        if current_role() == Role.STAFF:
            user_id = current_user_id()
        rows = container.holiday_service.list_paid_leaves(user_id=user_id, start=start, end=end)
        return ok({"data": [lv.as_dict() for lv in rows]})

    @app.route("/api/salary/paid-leaves", methods=["POST"], endpoint="salary_paid_leave_create")
    @roles_required(Role.ADMIN)
    @json_errors
    def paid_leave_create():
        data = json_body()
        leave = container.holiday_service.add_paid_leave(
            current_role=current_role(),
            user_id=data.get("user_id"),
            leave_date=parse_optional_date(data.get("date"), "date"),
            hours=data.get("hours"),
            reason=data.get("reason"),
            is_approved=data.get("is_approved"),
        )
        return ok({"message": "Paid leave added", "data": leave.as_dict()}, 201)

    @app.route("/api/salary/paid-leaves/<int:leave_id>", methods=["PUT"], endpoint="salary_paid_leave_update")
    @roles_required(Role.ADMIN)
    @json_errors
    def paid_leave_update(leave_id: int):
        leave = container.holiday_service.update_paid_leave(
            current_role=current_role(),
            leave_id=leave_id,
            changes=json_body(),
        )
        return ok({"data": leave.as_dict()})

    @app.route("/api/salary/paid-leaves/<int:leave_id>", methods=["DELETE"], endpoint="salary_paid_leave_delete")
    @roles_required(Role.ADMIN)
    @json_errors
    def paid_leave_delete(leave_id: int):
        container.holiday_service.delete_paid_leave(current_role=current_role(), leave_id=leave_id)
        return ok({"message": "Paid leave deleted"})
