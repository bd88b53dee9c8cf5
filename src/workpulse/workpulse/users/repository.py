from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Services depend on this protocol, never on a concrete database class.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_employee_code(self, employee_code: str) -> Optional[User]:
        raise NotImplementedError

    def list_active(self, *, dept_id: Optional[int] = None) -> Sequence[User]:
        raise NotImplementedError

    def set_hourly_rate(self, user_id: int, *, hourly_rate: float) -> bool:
        raise NotImplementedError

    def set_employee_code(self, user_id: int, *, employee_code: Optional[str]) -> bool:
        raise NotImplementedError
