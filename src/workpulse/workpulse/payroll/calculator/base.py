from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ...attendance.model import DailyAttendanceRecord


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def worked_hours(self, record: DailyAttendanceRecord) -> Optional[float]:
        """Billable hours for one reconciled day, or None when not computable."""

        raise NotImplementedError
