from __future__ import annotations

from datetime import date, timedelta

from flask import Flask, request

from ..common.datetime_utils import parse_optional_date
from ..common.web import (
    current_user_id,
    date_range_args,
    json_body,
    json_errors,
    login_required,
    ok,
    optional_int_arg,
    roles_required,
)
from ..core.constants import DEFAULT_ANALYTICS_DAYS
from ..core.enums import Role
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/prana/ingest", methods=["POST"], endpoint="prana_ingest")
    @login_required
    @json_errors
    def ingest():
        sample = container.prana_service.ingest(current_user_id(), json_body())
        return ok(
            {
                "message": "PRANA packet ingested",
                "data": {
                    "id": sample.activity_id,
                    "cognitive_state": sample.cognitive_state.value,
                    "focus_score": sample.focus_score,
                },
            },
            201,
        )

    @app.route("/api/prana/live-status", methods=["GET"], endpoint="prana_live_status")
    @roles_required(Role.ADMIN, Role.MANAGER)
    @json_errors
    def live_status():
        user_id = optional_int_arg("user_id")
        if user_id is not None:
            sample = container.prana_service.live_status(user_id)
            return ok({"data": sample.as_dict() if sample else None})

        samples = container.prana_service.live_status_all()
        return ok({"count": len(samples), "data": [s.as_dict() for s in samples]})

    @app.route("/api/prana/signals/<int:user_id>", methods=["GET"], endpoint="prana_latest_signals")
    @roles_required(Role.ADMIN, Role.MANAGER)
    @json_errors
    def latest_signals(user_id: int):
        sample = container.prana_service.latest_signals(user_id)
        return ok({"data": sample.as_dict() if sample else None})

    @app.route("/api/prana/summary/<int:user_id>", methods=["GET"], endpoint="prana_summary")
    @roles_required(Role.ADMIN, Role.MANAGER)
    @json_errors
    def summary(user_id: int):
        day = parse_optional_date(request.args.get("date"), "date") or date.today()
        return ok({"data": container.prana_service.summarize(user_id, day).as_dict()})

    @app.route("/api/prana/analytics/<int:user_id>", methods=["GET"], endpoint="prana_analytics")
    @roles_required(Role.ADMIN, Role.MANAGER)
    @json_errors
    def analytics(user_id: int):
        days = optional_int_arg("days") or DEFAULT_ANALYTICS_DAYS
        summaries = container.prana_service.analytics(user_id, days=days)
        return ok({"data": [s.as_dict(with_recent=False) for s in summaries]})

    @app.route("/api/prana/user/<int:user_id>", methods=["GET"], endpoint="prana_user_activity")
    @roles_required(Role.ADMIN, Role.MANAGER)
    @json_errors
    def user_activity(user_id: int):
        today = date.today()
        start, end = date_range_args(default_start=today - timedelta(days=7), default_end=today)
        samples = container.prana_service.recent_samples(
            user_id,
            start=start,
            end=end,
            limit=optional_int_arg("limit") or 100,
        )
        return ok({"count": len(samples), "data": [s.as_dict() for s in samples]})
