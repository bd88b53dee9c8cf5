from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time


@dataclass(frozen=True)
class Shift:
    """Thực thể miền (domain): Ca làm việc (Shift)."""

    shift_id: int
    shift_name: str
    start_time: time
    end_time: time
    break_minutes: int = 0

    def starts_at(self, day: date) -> datetime:
        return datetime.combine(day, self.start_time)
