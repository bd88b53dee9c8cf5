from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

import mysql.connector

from ..core.constants import DEFAULT_HOLIDAY_HOURS
from ..core.exceptions import ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_float
from .model import HolidayCredit, PaidLeave, PublicHoliday
from .repository import HolidayRepository

logger = logging.getLogger(__name__)

_HOLIDAY_COLUMNS = "holiday_id, holiday_date, holiday_name, dept_id, is_paid, credit_hours"
_LEAVE_COLUMNS = "leave_id, user_id, leave_date, hours, reason, is_approved"


def _to_holiday(row: dict) -> PublicHoliday:
    return PublicHoliday(
        holiday_id=int(row["holiday_id"]),
        holiday_date=row["holiday_date"],
        name=row.get("holiday_name") or "",
        dept_id=row.get("dept_id"),
        is_paid=bool(row.get("is_paid")),
        credit_hours=to_float(row.get("credit_hours")),
    )


def _to_leave(row: dict) -> PaidLeave:
    return PaidLeave(
        leave_id=int(row["leave_id"]),
        user_id=int(row["user_id"]),
        leave_date=row["leave_date"],
        hours=to_float(row["hours"]),
        reason=row.get("reason"),
        is_approved=bool(row.get("is_approved")),
    )


def _range_filter(column: str, start: Optional[date], end: Optional[date]) -> tuple[list[str], list]:
    where, params = [], []
    if start is not None:
        where.append(f"{column} >= %s")
        params.append(start)
    if end is not None:
        where.append(f"{column} <= %s")
        params.append(end)
    return where, params


class MySQLHolidayRepository(HolidayRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, default_hours: float = DEFAULT_HOLIDAY_HOURS):
        self._conn_factory = conn_factory
        self._default_hours = float(default_hours)

    def credits_for_user(
        self,
        *,
        user_id: int,
        dept_id: Optional[int],
        start: date,
        end: date,
    ) -> Sequence[HolidayCredit]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT holiday_date, holiday_name, credit_hours
                FROM public_holidays
                WHERE is_paid=1
                  AND holiday_date BETWEEN %s AND %s
                  AND (dept_id IS NULL OR dept_id=%s)
                ORDER BY holiday_date ASC
                """,
                (start, end, dept_id),
            )
            holidays = fetchall(cur)

            cur.execute(
                """
                SELECT leave_date, hours, reason
                FROM paid_leaves
                WHERE user_id=%s AND is_approved=1
                  AND leave_date BETWEEN %s AND %s
                ORDER BY leave_date ASC
                """,
                (int(user_id), start, end),
            )
            leaves = fetchall(cur)

        credits = [
            HolidayCredit(
                credit_date=r["holiday_date"],
                hours=self._default_hours if r.get("credit_hours") is None else to_float(r["credit_hours"]),
                source="HOLIDAY",
                label=r.get("holiday_name") or "",
            )
            for r in holidays
        ]
        credits.extend(
            HolidayCredit(
                credit_date=r["leave_date"],
                hours=to_float(r["hours"]),
                source="PAID_LEAVE",
                label=r.get("reason") or "",
            )
            for r in leaves
        )
        return credits

    # ----- public holidays -----

    def list_holidays(self, *, start: Optional[date] = None, end: Optional[date] = None) -> Sequence[PublicHoliday]:
        where, params = _range_filter("holiday_date", start, end)
        sql = f"SELECT {_HOLIDAY_COLUMNS} FROM public_holidays"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY holiday_date ASC, holiday_id ASC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_holiday(r) for r in fetchall(cur)]

    def get_holiday(self, holiday_id: int) -> Optional[PublicHoliday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_HOLIDAY_COLUMNS} FROM public_holidays WHERE holiday_id=%s", (int(holiday_id),))
            row = fetchone(cur)
            return _to_holiday(row) if row else None

    def add_holiday(self, holiday: PublicHoliday) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO public_holidays(holiday_date, holiday_name, dept_id, is_paid, credit_hours)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (holiday.holiday_date, holiday.name, holiday.dept_id, int(holiday.is_paid), holiday.credit_hours),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            logger.warning("Holiday insert rejected: %s", e)
            raise ValidationError(f"A holiday already exists on {holiday.holiday_date.isoformat()}") from e

    def update_holiday(self, holiday: PublicHoliday) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE public_holidays
                    SET holiday_date=%s, holiday_name=%s, dept_id=%s, is_paid=%s, credit_hours=%s
                    WHERE holiday_id=%s
                    """,
                    (
                        holiday.holiday_date,
                        holiday.name,
                        holiday.dept_id,
                        int(holiday.is_paid),
                        holiday.credit_hours,
                        int(holiday.holiday_id),
                    ),
                )
                return cur.rowcount > 0
        except mysql.connector.IntegrityError as e:
            logger.warning("Holiday %s update rejected: %s", holiday.holiday_id, e)
            raise ValidationError(f"A holiday already exists on {holiday.holiday_date.isoformat()}") from e

    def delete_holiday(self, holiday_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM public_holidays WHERE holiday_id=%s", (int(holiday_id),))
            return cur.rowcount > 0

    # ----- paid leave -----

    def list_paid_leaves(
        self,
        *,
        user_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[PaidLeave]:
        where, params = _range_filter("leave_date", start, end)
        if user_id is not None:
            where.append("user_id=%s")
            params.append(int(user_id))
        sql = f"SELECT {_LEAVE_COLUMNS} FROM paid_leaves"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY leave_date ASC, leave_id ASC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_leave(r) for r in fetchall(cur)]

    def get_paid_leave(self, leave_id: int) -> Optional[PaidLeave]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_LEAVE_COLUMNS} FROM paid_leaves WHERE leave_id=%s", (int(leave_id),))
            row = fetchone(cur)
            return _to_leave(row) if row else None

    def add_paid_leave(self, leave: PaidLeave) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO paid_leaves(user_id, leave_date, hours, reason, is_approved)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (int(leave.user_id), leave.leave_date, leave.hours, leave.reason, int(leave.is_approved)),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            logger.warning("Paid leave insert rejected: %s", e)
            raise ValidationError(
                f"User {leave.user_id} already has paid leave on {leave.leave_date.isoformat()}"
            ) from e

    def update_paid_leave(self, leave: PaidLeave) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE paid_leaves
                    SET leave_date=%s, hours=%s, reason=%s, is_approved=%s
                    WHERE leave_id=%s
                    """,
                    (leave.leave_date, leave.hours, leave.reason, int(leave.is_approved), int(leave.leave_id)),
                )
                return cur.rowcount > 0
        except mysql.connector.IntegrityError as e:
            logger.warning("Paid leave %s update rejected: %s", leave.leave_id, e)
            raise ValidationError(
                f"User {leave.user_id} already has paid leave on {leave.leave_date.isoformat()}"
            ) from e

    def delete_paid_leave(self, leave_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM paid_leaves WHERE leave_id=%s", (int(leave_id),))
            return cur.rowcount > 0
