from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from ..common.datetime_utils import parse_clock_time, parse_iso_date
from ..common.geocoding import ReverseGeocoder, coordinates_label
from ..common.validators import require_non_empty, require_number
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..shifts.repository import ShiftRepository
from ..users.model import User
from ..users.repository import UserRepository
from .factory import DayStatusFactory
from .model import BiometricImportResult, DailyAttendanceRecord, ReconciledDay
from .reconciliation import ReconciliationEngine
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

# Statuses set by an explicit admin action; reconciliation keeps them.
_EXPLICIT_STATUSES = (AttendanceStatus.ON_LEAVE, AttendanceStatus.HOLIDAY)


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        shifts: ShiftRepository,
        *,
        engine: ReconciliationEngine | None = None,
        status_factory: DayStatusFactory | None = None,
        geocoder: ReverseGeocoder | None = None,
    ):
        self._attendance = attendance
        self._users = users
        self._shifts = shifts
        self._engine = engine or ReconciliationEngine()
        self._factory = status_factory or DayStatusFactory()
        self._geocoder = geocoder

    def _require_user(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user or not user.is_active:
            raise NotFoundError(f"Employee {user_id} does not exist")
        return user

    def _location_label(self, latitude, longitude) -> Optional[str]:
        if latitude is None or longitude is None:
            return None
        lat = require_number(latitude, "Latitude", minimum=-90, maximum=90)
        lon = require_number(longitude, "Longitude", minimum=-180, maximum=180)
        if self._geocoder is None:
            return coordinates_label(lat, lon)
        return self._geocoder.label(lat, lon)

    # ----- app punches (start / end day) -----

    def start_day(
        self,
        user_id: int,
        *,
        now: datetime | None = None,
        latitude=None,
        longitude=None,
    ) -> DailyAttendanceRecord:
        now = now or datetime.now()
        today = now.date()
        self._require_user(user_id)

        existing = self._attendance.get_for_user_and_date(int(user_id), today)
        if existing and existing.app_punch.punch_in:
            raise ValidationError("Day already started")

        label = self._location_label(latitude, longitude)
        self._attendance.upsert_app_punch(user_id=int(user_id), work_date=today, punch_in=now, location_label=label)
        logger.info("User %s started day %s at %s", user_id, today, now.strftime("%H:%M:%S"))
        return self.reconcile_day(int(user_id), today)

    def end_day(self, user_id: int, *, now: datetime | None = None) -> DailyAttendanceRecord:
        now = now or datetime.now()
        today = now.date()

        record = self._attendance.get_for_user_and_date(int(user_id), today)
        if not record or not record.app_punch.punch_in:
            raise ValidationError("Day has not been started")
        if record.app_punch.punch_out is not None:
            raise ValidationError("Day already ended")
        if now < record.app_punch.punch_in:
            raise ValidationError("End of day cannot be before start of day")

        self._attendance.upsert_app_punch(user_id=int(user_id), work_date=today, punch_out=now)
        logger.info("User %s ended day %s at %s", user_id, today, now.strftime("%H:%M:%S"))
        return self.reconcile_day(int(user_id), today)

    # ----- biometric punches -----

    def record_biometric_punch(
        self,
        *,
        user_id: int,
        work_date: date,
        punch_in: Optional[datetime],
        punch_out: Optional[datetime],
    ) -> tuple[DailyAttendanceRecord, bool]:
        if punch_in is None and punch_out is None:
            raise ValidationError("Biometric row has neither a punch-in nor a punch-out")
        if punch_in and punch_out and punch_out < punch_in:
            raise ValidationError("Punch-out cannot be before punch-in")

        _, created = self._attendance.upsert_biometric_punch(
            user_id=int(user_id),
            work_date=work_date,
            punch_in=punch_in,
            punch_out=punch_out,
        )
        return self.reconcile_day(int(user_id), work_date), created

    def import_biometric_rows(self, rows: Iterable[dict]) -> BiometricImportResult:
        """Upsert rows of an already-parsed device log.

        Each row carries ``employee_code``, ``date`` (YYYY-MM-DD), ``time_in``
        and ``time_out`` (clock strings) and optionally ``name``. A punch-out
        earlier than the punch-in is taken as crossing midnight. Bad rows are
        reported in ``errors`` and do not stop the import.
        """

        result = BiometricImportResult()
        for index, row in enumerate(rows or []):
            result.processed += 1
            if not isinstance(row, dict):
                result.errors.append({"row": index, "employee_code": None, "error": "Row must be an object"})
                continue
            try:
                code = require_non_empty(row.get("employee_code") or row.get("employee_id") or "", "Employee code")
                user = self._users.get_by_employee_code(code)
                if not user:
                    raise NotFoundError(f"No employee with code {code}")

                try:
                    work_date = parse_iso_date(str(row.get("date") or "").strip())
                except ValueError:
                    raise ValidationError(f"Invalid date: {row.get('date')!r}")

                time_in = parse_clock_time(row.get("time_in"))
                time_out = parse_clock_time(row.get("time_out"))
                punch_in = datetime.combine(work_date, time_in) if time_in else None
                punch_out = datetime.combine(work_date, time_out) if time_out else None
                if punch_in and punch_out and punch_out < punch_in:
                    punch_out += timedelta(days=1)

                _, created = self.record_biometric_punch(
                    user_id=user.user_id,
                    work_date=work_date,
                    punch_in=punch_in,
                    punch_out=punch_out,
                )
                if created:
                    result.created += 1
                else:
                    result.updated += 1
            except (ValidationError, NotFoundError) as e:
                result.errors.append({"row": index, "employee_code": row.get("employee_code"), "error": str(e)})

        logger.info(
            "Biometric import: processed=%s created=%s updated=%s errors=%s",
            result.processed,
            result.created,
            result.updated,
            len(result.errors),
        )
        return result

    # ----- reconciliation -----

    def _reconcile_record(self, record: DailyAttendanceRecord) -> DailyAttendanceRecord:
        if record.is_manual_override:
            return record

        outcome = self._engine.reconcile(record.app_punch, record.biometric_punch)

        if record.status in _EXPLICIT_STATUSES:
            day = ReconciledDay(outcome=outcome, status=record.status)
        else:
            user = self._users.get_by_id(record.user_id)
            shift = self._shifts.get_by_id(user.shift_id) if user and user.shift_id else None
            strategy = self._factory.for_day(outcome=outcome, work_date=record.work_date, shift=shift)
            decision = strategy.decide(outcome=outcome, work_date=record.work_date, shift=shift)
            day = ReconciledDay(outcome=outcome, status=decision.status, note=decision.note)

        self._attendance.save_reconciliation(attendance_id=record.attendance_id, day=day)
        if outcome.needs_review:
            logger.info(
                "Attendance %s (user %s, %s) flagged for review: %s",
                record.attendance_id,
                record.user_id,
                record.work_date,
                outcome.remarks,
            )

        return replace(
            record,
            final_times=outcome.final_times,
            merge_case=outcome.merge_case,
            remarks=outcome.remarks,
            status=day.status,
            needs_review=outcome.needs_review,
            time_differences=outcome.time_differences,
            note=day.note or record.note,
        )

    def reconcile_day(self, user_id: int, work_date: date) -> DailyAttendanceRecord:
        record = self._attendance.get_for_user_and_date(int(user_id), work_date)
        if not record:
            raise NotFoundError(f"No attendance for user {user_id} on {work_date.isoformat()}")
        return self._reconcile_record(record)

    def reconcile_range(self, *, start: date, end: date, user_id: Optional[int] = None) -> dict:
        if end < start:
            raise ValidationError("End date cannot be before start date")

        records = self._attendance.list_range(start_date=start, end_date=end, user_id=user_id)
        cases: Counter = Counter()
        for record in records:
            reconciled = self._reconcile_record(record)
            cases[reconciled.merge_case.value if reconciled.merge_case else "MANUAL"] += 1

        return {"reconciled": len(records), "cases": dict(cases)}

    # ----- admin / reads -----

    def mark_status(
        self,
        *,
        current_role: Role,
        user_id: int,
        work_date: date,
        status: AttendanceStatus,
        note: Optional[str] = None,
    ) -> DailyAttendanceRecord:
        if current_role not in (Role.ADMIN, Role.MANAGER):
            raise AuthorizationError("Only admins and managers can change day status")
        self._require_user(user_id)

        record = self._attendance.get_for_user_and_date(int(user_id), work_date)
        if record:
            attendance_id = record.attendance_id
        else:
            attendance_id, _ = self._attendance.upsert_app_punch(user_id=int(user_id), work_date=work_date)

        note = (note or "").strip() or None
        if not self._attendance.set_status(attendance_id=attendance_id, status=status, note=note):
            raise ValidationError("Updating the day status failed")
        logger.info("User %s on %s marked %s", user_id, work_date, status.value)
        return self._attendance.get_for_user_and_date(int(user_id), work_date)

    def mark_record_status(
        self,
        *,
        current_role: Role,
        attendance_id: int,
        status: AttendanceStatus,
        note: Optional[str] = None,
    ) -> DailyAttendanceRecord:
        record = self._attendance.get_by_id(int(attendance_id))
        if not record:
            raise NotFoundError(f"Attendance record {attendance_id} does not exist")
        return self.mark_status(
            current_role=current_role,
            user_id=record.user_id,
            work_date=record.work_date,
            status=status,
            note=note,
        )

    def purge_record(self, *, current_role: Role, attendance_id: int) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can delete attendance records")
        if not self._attendance.purge(int(attendance_id)):
            raise NotFoundError(f"Attendance record {attendance_id} does not exist")
        logger.warning("Attendance record %s deleted", attendance_id)

    def list_records(
        self,
        *,
        start: date,
        end: date,
        user_id: Optional[int] = None,
        dept_id: Optional[int] = None,
    ) -> list[DailyAttendanceRecord]:
        return list(self._attendance.list_range(start_date=start, end_date=end, user_id=user_id, dept_id=dept_id))

    def list_for_review(self, *, start: date, end: date, dept_id: Optional[int] = None) -> list[DailyAttendanceRecord]:
        return list(self._attendance.list_for_review(start_date=start, end_date=end, dept_id=dept_id))

    def get_history_ui(self, user_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> list[dict]:
        return [self._to_ui(r) for r in self._attendance.get_recent_for_user(int(user_id), limit)]

    def _to_ui(self, r: DailyAttendanceRecord) -> dict:
        def _fmt(value: Optional[datetime]) -> str:
            return value.strftime("%H:%M:%S") if value else "-"

        return {
            "date": r.work_date.strftime("%Y-%m-%d"),
            "check_in": _fmt(r.final_times.final_in),
            "check_out": _fmt(r.final_times.final_out),
            "worked_hours": r.final_times.worked_hours,
            "status": r.status.value,
            "remarks": r.remarks or "",
            "needs_review": r.needs_review,
        }
