"""Route helpers shared by the feature controllers."""

from __future__ import annotations

from datetime import date
from functools import wraps

from flask import current_app, jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import DomainError, ValidationError
from .datetime_utils import parse_optional_date


def fail(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def ok(payload: dict | None = None, status: int = 200):
    body = {"success": True}
    body.update(payload or {})
    return jsonify(body), status


def current_role() -> Role | None:
    try:
        return Role(session.get("role"))
    except ValueError:
        return None


def current_user_id() -> int:
    return int(session["user_id"])


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return fail("Please log in to continue", 401)
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    allowed = {r.value for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return fail("Please log in to continue", 401)
            if session.get("role") not in allowed:
                return fail("You do not have access to this resource", 403)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def json_errors(view):
    """Turn domain errors into JSON responses; anything else becomes a logged 500."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except DomainError as e:
            return fail(str(e), e.http_status)
        except Exception:
            current_app.logger.exception("Unhandled error in %s %s", request.method, request.path)
            return fail("Internal server error", 500)

    return wrapper


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def date_range_args(*, default_start: date, default_end: date) -> tuple[date, date]:
    start = parse_optional_date(request.args.get("start"), "start") or default_start
    end = parse_optional_date(request.args.get("end"), "end") or default_end
    if end < start:
        raise ValidationError("End date cannot be before start date")
    return start, end


def optional_int_arg(name: str) -> int | None:
    value = request.args.get(name)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
