from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import ConfirmedSalaryRecord, HolidayCredit, PaidLeave, PublicHoliday, SalaryBucket


class HolidayRepository(Protocol):
    def credits_for_user(
        self,
        *,
        user_id: int,
        dept_id: Optional[int],
        start: date,
        end: date,
    ) -> Sequence[HolidayCredit]:
        """Paid public holidays (company-wide or for ``dept_id``) plus approved paid leave."""

        raise NotImplementedError

    def list_holidays(self, *, start: Optional[date] = None, end: Optional[date] = None) -> Sequence[PublicHoliday]:
        raise NotImplementedError

    def get_holiday(self, holiday_id: int) -> Optional[PublicHoliday]:
        raise NotImplementedError

    def add_holiday(self, holiday: PublicHoliday) -> int:
        raise NotImplementedError

    def update_holiday(self, holiday: PublicHoliday) -> bool:
        raise NotImplementedError

    def delete_holiday(self, holiday_id: int) -> bool:
        raise NotImplementedError

    def list_paid_leaves(
        self,
        *,
        user_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[PaidLeave]:
        raise NotImplementedError

    def get_paid_leave(self, leave_id: int) -> Optional[PaidLeave]:
        raise NotImplementedError

    def add_paid_leave(self, leave: PaidLeave) -> int:
        raise NotImplementedError

    def update_paid_leave(self, leave: PaidLeave) -> bool:
        raise NotImplementedError

    def delete_paid_leave(self, leave_id: int) -> bool:
        raise NotImplementedError


class SalaryRepository(Protocol):
    """Confirmed salaries and their archived buckets."""

    def add_confirmed(self, record: ConfirmedSalaryRecord) -> int:
        raise NotImplementedError

    def get_confirmed(self, record_id: int) -> Optional[ConfirmedSalaryRecord]:
        raise NotImplementedError

    def list_confirmed(self, *, user_id: Optional[int] = None) -> Sequence[ConfirmedSalaryRecord]:
        raise NotImplementedError

    def update_confirmed(
        self,
        record_id: int,
        *,
        per_hour_rate: float,
        confirmed_salary: float,
        confirmation_notes: Optional[str],
    ) -> bool:
        raise NotImplementedError

    def delete_confirmed(self, record_id: int) -> bool:
        raise NotImplementedError

    def archive_bucket(self, *, name: str, created_by: Optional[int], record_ids: Sequence[int]) -> int:
        """Copy the records into a new bucket and delete them, all-or-nothing.

        Raises ``ArchiveError`` after rolling back when any step fails.
        """

        raise NotImplementedError

    def list_buckets(self) -> Sequence[SalaryBucket]:
        raise NotImplementedError

    def get_bucket(self, bucket_id: int) -> Optional[SalaryBucket]:
        raise NotImplementedError
