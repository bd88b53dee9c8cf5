from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Thực thể miền (domain): User / employee.

    ``employee_code`` is the id printed on biometric device logs.
    """

    user_id: int
    full_name: str
    username: str
    password_hash: str
    role: Role
    dept_id: Optional[int]
    shift_id: Optional[int]
    employee_code: Optional[str] = None
    hourly_rate: float = 0.0
    is_active: bool = True
