from __future__ import annotations

from datetime import timedelta

from flask import Flask, session

from ..common.web import current_role, json_body, json_errors, login_required, ok, roles_required
from ..core.constants import DEFAULT_SESSION_DAYS
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    app.permanent_session_lifetime = timedelta(days=DEFAULT_SESSION_DAYS)

    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    @json_errors
    def login():
        data = json_body()
        s_user = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""))

        session.clear()
        session.permanent = bool(data.get("remember_me"))
        session["user_id"] = s_user.user_id
        session["name"] = s_user.full_name
        session["role"] = s_user.role.value
        session["dept_id"] = s_user.dept_id

        app.logger.info("User %s logged in", s_user.user_id)
        return ok(
            {
                "user": {
                    "user_id": s_user.user_id,
                    "full_name": s_user.full_name,
                    "role": s_user.role.value,
                    "dept_id": s_user.dept_id,
                }
            }
        )

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    @login_required
    def logout():
        session.clear()
        return ok({"message": "Logged out"})

    @app.route("/api/users/<int:user_id>/hourly-rate", methods=["PUT"], endpoint="user_hourly_rate")
    @roles_required(Role.ADMIN)
    @json_errors
    def hourly_rate(user_id: int):
        rate = container.user_service.set_hourly_rate(
            current_role=current_role(),
            user_id=user_id,
            hourly_rate=json_body().get("hourly_rate"),
        )
        return ok({"user_id": user_id, "hourly_rate": rate})

    @app.route("/api/users/<int:user_id>/employee-code", methods=["PUT"], endpoint="user_employee_code")
    @roles_required(Role.ADMIN)
    @json_errors
    def employee_code(user_id: int):
        code = container.user_service.set_employee_code(
            current_role=current_role(),
            user_id=user_id,
            employee_code=json_body().get("employee_code"),
        )
        return ok({"user_id": user_id, "employee_code": code})

    @app.route("/api/users/hourly-rates", methods=["PUT"], endpoint="user_hourly_rates_bulk")
    @roles_required(Role.ADMIN)
    @json_errors
    def hourly_rates_bulk():
        updates = json_body().get("updates")
        if not isinstance(updates, list) or not updates:
            raise ValidationError("updates must be a non-empty list")
        result = container.user_service.bulk_update_hourly_rates(current_role=current_role(), updates=updates)
        return ok({"data": result})
