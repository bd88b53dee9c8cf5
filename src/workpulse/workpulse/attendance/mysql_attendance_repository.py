from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus, MergeCase
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_float
from .model import (
    AttendanceReportRow,
    DailyAttendanceRecord,
    FinalTimes,
    PunchPair,
    ReconciledDay,
    TimeDifferences,
)
from .repository import AttendanceRepository

_RECORD_COLUMNS = """
    da.attendance_id, da.user_id, da.work_date,
    da.app_in, da.app_out, da.bio_in, da.bio_out,
    da.final_in, da.final_out, da.worked_hours,
    da.merge_case, da.remarks, da.status, da.needs_review,
    da.in_diff_minutes, da.out_diff_minutes, da.in_within_tolerance, da.out_within_tolerance,
    da.is_manual_override, da.location_label, da.note
"""


def _to_record(r: dict) -> DailyAttendanceRecord:
    diffs = None
    if r.get("in_within_tolerance") is not None or r.get("out_within_tolerance") is not None:
        diffs = TimeDifferences(
            in_diff_minutes=to_float(r.get("in_diff_minutes")),
            out_diff_minutes=to_float(r.get("out_diff_minutes")),
            in_within_tolerance=bool(r.get("in_within_tolerance")),
            out_within_tolerance=bool(r.get("out_within_tolerance")),
        )

    return DailyAttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        app_punch=PunchPair(punch_in=r.get("app_in"), punch_out=r.get("app_out")),
        biometric_punch=PunchPair(punch_in=r.get("bio_in"), punch_out=r.get("bio_out")),
        final_times=FinalTimes(
            final_in=r.get("final_in"),
            final_out=r.get("final_out"),
            worked_hours=to_float(r.get("worked_hours")),
        ),
        merge_case=MergeCase(r["merge_case"]) if r.get("merge_case") else None,
        remarks=r.get("remarks"),
        status=AttendanceStatus(r["status"]),
        needs_review=bool(r.get("needs_review")),
        time_differences=diffs,
        is_manual_override=bool(r.get("is_manual_override")),
        location_label=r.get("location_label"),
        note=r.get("note"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[DailyAttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM daily_attendance da WHERE da.attendance_id=%s",
                (int(attendance_id),),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[DailyAttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM daily_attendance da WHERE da.user_id=%s AND da.work_date=%s",
                (int(user_id), work_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    @staticmethod
    def _exists(cur, user_id: int, work_date: date) -> bool:
        cur.execute(
            "SELECT attendance_id FROM daily_attendance WHERE user_id=%s AND work_date=%s FOR UPDATE",
            (int(user_id), work_date),
        )
        return fetchone(cur) is not None

    def upsert_app_punch(
        self,
        *,
        user_id: int,
        work_date: date,
        punch_in: Optional[datetime] = None,
        punch_out: Optional[datetime] = None,
        location_label: Optional[str] = None,
    ) -> tuple[int, bool]:
        with db_cursor(self._conn_factory) as (_, cur):
            existed = self._exists(cur, user_id, work_date)
            cur.execute(
                """
                INSERT INTO daily_attendance(user_id, work_date, app_in, app_out, location_label)
                VALUES(%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    attendance_id=LAST_INSERT_ID(attendance_id),
                    app_in=COALESCE(VALUES(app_in), app_in),
                    app_out=COALESCE(VALUES(app_out), app_out),
                    location_label=COALESCE(VALUES(location_label), location_label)
                """,
                (int(user_id), work_date, punch_in, punch_out, location_label),
            )
            return int(cur.lastrowid), not existed

    def upsert_biometric_punch(
        self,
        *,
        user_id: int,
        work_date: date,
        punch_in: Optional[datetime],
        punch_out: Optional[datetime],
    ) -> tuple[int, bool]:
        with db_cursor(self._conn_factory) as (_, cur):
            existed = self._exists(cur, user_id, work_date)
            cur.execute(
                """
                INSERT INTO daily_attendance(user_id, work_date, bio_in, bio_out)
                VALUES(%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    attendance_id=LAST_INSERT_ID(attendance_id),
                    bio_in=VALUES(bio_in),
                    bio_out=VALUES(bio_out)
                """,
                (int(user_id), work_date, punch_in, punch_out),
            )
            return int(cur.lastrowid), not existed

    def save_reconciliation(self, *, attendance_id: int, day: ReconciledDay) -> bool:
        outcome = day.outcome
        final = outcome.final_times
        diffs = outcome.time_differences

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE daily_attendance
                SET final_in=%s, final_out=%s, worked_hours=%s,
                    merge_case=%s, remarks=%s, status=%s, needs_review=%s,
                    in_diff_minutes=%s, out_diff_minutes=%s,
                    in_within_tolerance=%s, out_within_tolerance=%s,
                    note=COALESCE(%s, note)
                WHERE attendance_id=%s AND is_manual_override=0
                """,
                (
                    final.final_in,
                    final.final_out,
                    final.worked_hours,
                    outcome.merge_case.value,
                    outcome.remarks,
                    day.status.value,
                    int(outcome.needs_review),
                    diffs.in_diff_minutes if diffs else None,
                    diffs.out_diff_minutes if diffs else None,
                    int(diffs.in_within_tolerance) if diffs else None,
                    int(diffs.out_within_tolerance) if diffs else None,
                    day.note,
                    int(attendance_id),
                ),
            )
            return cur.rowcount > 0

    def apply_manual_override(
        self,
        *,
        attendance_id: int,
        final_in: Optional[datetime],
        final_out: Optional[datetime],
        worked_hours: Optional[float],
        note: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE daily_attendance
                SET final_in=%s, final_out=%s, worked_hours=%s,
                    is_manual_override=1, needs_review=0, note=%s
                WHERE attendance_id=%s
                """,
                (final_in, final_out, worked_hours, note, int(attendance_id)),
            )
            return cur.rowcount > 0

    def set_status(self, *, attendance_id: int, status: AttendanceStatus, note: Optional[str] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE daily_attendance SET status=%s, note=COALESCE(%s, note) WHERE attendance_id=%s",
                (status.value, note, int(attendance_id)),
            )
            return cur.rowcount > 0

    def _select_range(
        self,
        *,
        start_date: date,
        end_date: date,
        user_id: Optional[int],
        dept_id: Optional[int],
        review_only: bool = False,
    ) -> Sequence[DailyAttendanceRecord]:
        clauses = ["da.work_date BETWEEN %s AND %s"]
        params: list[object] = [start_date, end_date]

        if user_id is not None:
            clauses.append("da.user_id=%s")
            params.append(int(user_id))
        if dept_id is not None:
            clauses.append("u.dept_id=%s")
            params.append(int(dept_id))
        if review_only:
            clauses.append("da.needs_review=1")

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM daily_attendance da
                JOIN users u ON u.user_id = da.user_id
                WHERE {where}
                ORDER BY da.work_date ASC, da.user_id ASC
                """,
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_range(
        self,
        *,
        start_date: date,
        end_date: date,
        user_id: Optional[int] = None,
        dept_id: Optional[int] = None,
    ) -> Sequence[DailyAttendanceRecord]:
        return self._select_range(start_date=start_date, end_date=end_date, user_id=user_id, dept_id=dept_id)

    def list_for_review(
        self,
        *,
        start_date: date,
        end_date: date,
        dept_id: Optional[int] = None,
    ) -> Sequence[DailyAttendanceRecord]:
        return self._select_range(
            start_date=start_date,
            end_date=end_date,
            user_id=None,
            dept_id=dept_id,
            review_only=True,
        )

    def get_recent_for_user(self, user_id: int, limit: int) -> Sequence[DailyAttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM daily_attendance da
                WHERE da.user_id=%s
                ORDER BY da.work_date DESC
                LIMIT %s
                """,
                (int(user_id), int(limit)),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def get_report_rows(
        self,
        *,
        start_date: date,
        end_date: date,
        dept_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> Sequence[AttendanceReportRow]:
        clauses = ["da.work_date BETWEEN %s AND %s"]
        params: list[object] = [start_date, end_date]

        if dept_id is not None:
            clauses.append("u.dept_id=%s")
            params.append(int(dept_id))
        if user_id is not None:
            clauses.append("u.user_id=%s")
            params.append(int(user_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}, u.full_name, u.username, d.dept_name
                FROM daily_attendance da
                JOIN users u ON u.user_id = da.user_id
                LEFT JOIN departments d ON d.dept_id = u.dept_id
                WHERE {where}
                ORDER BY da.work_date DESC, u.user_id ASC
                """,
                tuple(params),
            )
            return [
                AttendanceReportRow(
                    user_id=int(r["user_id"]),
                    full_name=r["full_name"],
                    username=r["username"],
                    dept_name=r.get("dept_name"),
                    record=_to_record(r),
                )
                for r in fetchall(cur)
            ]

    def purge(self, attendance_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM daily_attendance WHERE attendance_id=%s", (int(attendance_id),))
            return cur.rowcount > 0
