from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from werkzeug.security import check_password_hash

from ..common.validators import require_non_empty, require_number
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    full_name: str
    role: Role
    dept_id: Optional[int]


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, username: str, password: str) -> SessionUser:
        username = require_non_empty(username, "Username")
        user = self._users.get_by_username(username)
        if not user or not user.is_active:
            raise AuthenticationError("Invalid username or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not ok:
            raise AuthenticationError("Invalid username or password")

        return SessionUser(user_id=user.user_id, full_name=user.full_name, role=user.role, dept_id=user.dept_id)


class UserService:
    """Use case: manage employee pay settings (admin)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def set_hourly_rate(self, *, current_role: Role, user_id: int, hourly_rate) -> float:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can change hourly rates")

        rate = require_number(hourly_rate, "Hourly rate", minimum=0)
        if not self._users.get_by_id(int(user_id)):
            raise NotFoundError(f"Employee {user_id} does not exist")
        if not self._users.set_hourly_rate(int(user_id), hourly_rate=rate):
            raise ValidationError("Updating the hourly rate failed")

        logger.info("Hourly rate for user %s set to %.2f", user_id, rate)
        return rate

    def set_employee_code(self, *, current_role: Role, user_id: int, employee_code) -> Optional[str]:
        """Link an employee to the id printed on biometric logs; blank clears it."""

        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can change employee codes")
        if employee_code is not None and not isinstance(employee_code, str):
            raise ValidationError("Employee code must be a string")
        if not self._users.get_by_id(int(user_id)):
            raise NotFoundError(f"Employee {user_id} does not exist")

        code = (employee_code or "").strip() or None
        if code is not None:
            if len(code) > 50:
                raise ValidationError("Employee code must be at most 50 characters")
            owner = self._users.get_by_employee_code(code)
            if owner and owner.user_id != int(user_id):
                raise ValidationError(f"Employee code {code} is already used by {owner.username}")

        if not self._users.set_employee_code(int(user_id), employee_code=code):
            raise ValidationError("Updating the employee code failed")

        logger.info("Employee code for user %s set to %s", user_id, code)
        return code

    def bulk_update_hourly_rates(self, *, current_role: Role, updates: Iterable[dict]) -> dict:
        """Apply ``[{"user_id": .., "hourly_rate": ..}]``; one bad row does not stop the rest."""

        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can change hourly rates")

        updated: list[int] = []
        errors: list[dict] = []
        for index, item in enumerate(updates or []):
            if not isinstance(item, dict):
                errors.append({"index": index, "error": "Update must be an object"})
                continue
            try:
                user_id = int(item.get("user_id"))
                self.set_hourly_rate(current_role=current_role, user_id=user_id, hourly_rate=item.get("hourly_rate"))
                updated.append(user_id)
            except (TypeError, ValueError):
                errors.append({"index": index, "error": "user_id must be an integer"})
            except (ValidationError, NotFoundError) as e:
                errors.append({"index": index, "error": str(e)})

        return {"updated": updated, "errors": errors}
