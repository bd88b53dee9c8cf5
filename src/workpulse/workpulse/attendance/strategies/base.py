from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Optional

from ...core.enums import AttendanceStatus
from ...shifts.model import Shift
from ..model import MergeOutcome


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    note: Optional[str] = None


class DayStatusStrategy(ABC):
    """Strategy Pattern: encapsulate how a reconciled day gets its status."""

    @abstractmethod
    def decide(self, *, outcome: MergeOutcome, work_date: date, shift: Optional[Shift]) -> StatusDecision:
        raise NotImplementedError
