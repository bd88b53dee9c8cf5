from __future__ import annotations

import logging
from typing import Optional, Sequence

import mysql.connector

from ..core.exceptions import ArchiveError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, placeholders, to_float
from .model import ConfirmedSalaryRecord, SalaryBucket
from .repository import SalaryRepository

logger = logging.getLogger(__name__)

_SNAPSHOT_COLUMNS = (
    "user_id, period_start, period_end, working_hours, holiday_hours, total_cumulative_hours, "
    "per_hour_rate, calculated_salary, confirmed_salary, confirmed_by, confirmation_notes"
)


def _to_record(r: dict, *, id_column: str = "record_id") -> ConfirmedSalaryRecord:
    return ConfirmedSalaryRecord(
        record_id=int(r[id_column]),
        user_id=int(r["user_id"]),
        period_start=r["period_start"],
        period_end=r["period_end"],
        working_hours=to_float(r["working_hours"]),
        holiday_hours=to_float(r["holiday_hours"]),
        total_cumulative_hours=to_float(r["total_cumulative_hours"]),
        per_hour_rate=to_float(r["per_hour_rate"]),
        calculated_salary=to_float(r["calculated_salary"]),
        confirmed_salary=to_float(r["confirmed_salary"]),
        confirmed_by=r.get("confirmed_by"),
        confirmation_notes=r.get("confirmation_notes"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
        full_name=r.get("full_name"),
        employee_code=r.get("employee_code"),
    )


def _to_bucket(r: dict, entries: Sequence[ConfirmedSalaryRecord] = ()) -> SalaryBucket:
    return SalaryBucket(
        bucket_id=int(r["bucket_id"]),
        name=r["bucket_name"],
        created_by=r.get("created_by"),
        created_at=r.get("created_at"),
        record_count=int(r["record_count"]),
        total_amount=to_float(r["total_amount"]) or 0.0,
        entries=tuple(entries),
    )


class MySQLSalaryRepository(SalaryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add_confirmed(self, record: ConfirmedSalaryRecord) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO confirmed_salaries({_SNAPSHOT_COLUMNS}) VALUES({placeholders(11)})",
                (
                    int(record.user_id),
                    record.period_start,
                    record.period_end,
                    record.working_hours,
                    record.holiday_hours,
                    record.total_cumulative_hours,
                    record.per_hour_rate,
                    record.calculated_salary,
                    record.confirmed_salary,
                    record.confirmed_by,
                    record.confirmation_notes,
                ),
            )
            return int(cur.lastrowid)

    def get_confirmed(self, record_id: int) -> Optional[ConfirmedSalaryRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT cs.*, u.full_name, u.employee_code
                FROM confirmed_salaries cs
                JOIN users u ON u.user_id = cs.user_id
                WHERE cs.record_id=%s
                """,
                (int(record_id),),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def list_confirmed(self, *, user_id: Optional[int] = None) -> Sequence[ConfirmedSalaryRecord]:
        where = ""
        params: tuple = ()
        if user_id is not None:
            where = "WHERE cs.user_id=%s"
            params = (int(user_id),)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT cs.*, u.full_name, u.employee_code
                FROM confirmed_salaries cs
                JOIN users u ON u.user_id = cs.user_id
                {where}
                ORDER BY cs.period_start DESC, u.full_name ASC
                """,
                params,
            )
            return [_to_record(r) for r in fetchall(cur)]

    def update_confirmed(
        self,
        record_id: int,
        *,
        per_hour_rate: float,
        confirmed_salary: float,
        confirmation_notes: Optional[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE confirmed_salaries
                SET per_hour_rate=%s, confirmed_salary=%s, confirmation_notes=%s
                WHERE record_id=%s
                """,
                (per_hour_rate, confirmed_salary, confirmation_notes, int(record_id)),
            )
            return cur.rowcount > 0

    def delete_confirmed(self, record_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM confirmed_salaries WHERE record_id=%s", (int(record_id),))
            return cur.rowcount > 0

    def archive_bucket(self, *, name: str, created_by: Optional[int], record_ids: Sequence[int]) -> int:
        ids = [int(i) for i in record_ids]
        marks = placeholders(len(ids))

        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"""
                    SELECT record_id, confirmed_salary
                    FROM confirmed_salaries
                    WHERE record_id IN ({marks})
                    FOR UPDATE
                    """,
                    tuple(ids),
                )
                locked = fetchall(cur)
                if len(locked) != len(ids):
                    raise ArchiveError("Some confirmed salaries were removed before archiving")
                total = round(sum(to_float(r["confirmed_salary"]) for r in locked), 2)

                cur.execute(
                    "INSERT INTO salary_buckets(bucket_name, created_by, record_count, total_amount) VALUES(%s,%s,%s,%s)",
                    (name, created_by, len(ids), total),
                )
                bucket_id = int(cur.lastrowid)

                cur.execute(
                    f"""
                    INSERT INTO salary_history(bucket_id, source_record_id, {_SNAPSHOT_COLUMNS}, confirmed_at)
                    SELECT %s, record_id, {_SNAPSHOT_COLUMNS}, created_at
                    FROM confirmed_salaries
                    WHERE record_id IN ({marks})
                    """,
                    (bucket_id, *ids),
                )
                if cur.rowcount != len(ids):
                    raise ArchiveError("Copying confirmed salaries into history failed")

                cur.execute(f"DELETE FROM confirmed_salaries WHERE record_id IN ({marks})", tuple(ids))
                if cur.rowcount != len(ids):
                    raise ArchiveError("Removing archived salaries failed")
        except mysql.connector.Error as e:
            logger.error("Salary bucket %r rolled back: %s", name, e)
            raise ArchiveError("Archiving failed; no records were moved") from e

        logger.info("Salary bucket %s (%r) archived %s records", bucket_id, name, len(ids))
        return bucket_id

    def list_buckets(self) -> Sequence[SalaryBucket]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT bucket_id, bucket_name, created_by, created_at, record_count, total_amount
                FROM salary_buckets
                ORDER BY created_at DESC, bucket_id DESC
                """
            )
            return [_to_bucket(r) for r in fetchall(cur)]

    def get_bucket(self, bucket_id: int) -> Optional[SalaryBucket]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT bucket_id, bucket_name, created_by, created_at, record_count, total_amount
                FROM salary_buckets
                WHERE bucket_id=%s
                """,
                (int(bucket_id),),
            )
            bucket = fetchone(cur)
            if not bucket:
                return None

            cur.execute(
                """
                SELECT sh.*, sh.confirmed_at AS created_at, u.full_name, u.employee_code
                FROM salary_history sh
                JOIN users u ON u.user_id = sh.user_id
                WHERE sh.bucket_id=%s
                ORDER BY u.full_name ASC
                """,
                (int(bucket_id),),
            )
            entries = [_to_record(r, id_column="source_record_id") for r in fetchall(cur)]
            return _to_bucket(bucket, entries)
