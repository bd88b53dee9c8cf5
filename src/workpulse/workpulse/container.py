from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .attendance.factory import DayStatusFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.reconciliation import ReconciliationEngine, ReconciliationPolicy
from .attendance.service import AttendanceService
from .common.geocoding import ReverseGeocoder
from .core import constants
from .core.enums import PunchSource
from .core.exceptions import ValidationError
from .database.connection import DBConfig, DatabaseConnection
from .payroll.calculator.hourly_salary_calculator import HourlySalaryCalculator
from .payroll.mysql_holiday_repository import MySQLHolidayRepository
from .payroll.mysql_salary_repository import MySQLSalaryRepository
from .payroll.service import HolidayService, PayrollReportService, SalaryService
from .prana.mysql_prana_repository import MySQLPranaRepository
from .prana.service import PranaService
from .shifts.mysql_shift_repository import MySQLShiftRepository
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    """Everything the controllers need. Tests build one from fakes."""

    auth_service: AuthService
    user_service: UserService
    attendance_service: AttendanceService
    payroll_report_service: PayrollReportService
    salary_service: SalaryService
    prana_service: PranaService
    holiday_service: HolidayService
    conn: Optional[DatabaseConnection] = None


def _setting(settings: dict, key: str, default: Any) -> Any:
    value = settings.get(key)
    return default if value is None or value == "" else value


def build_geocoder(settings: dict) -> Optional[ReverseGeocoder]:
    url = settings.get("GEOCODER_URL", constants.DEFAULT_GEOCODER_URL)
    if not url:
        return None
    return ReverseGeocoder(
        url=url,
        timeout=float(_setting(settings, "GEOCODER_TIMEOUT_SECONDS", constants.DEFAULT_GEOCODER_TIMEOUT_SECONDS)),
        user_agent=str(_setting(settings, "GEOCODER_USER_AGENT", constants.DEFAULT_GEOCODER_USER_AGENT)),
    )


def build_engine(settings: dict) -> ReconciliationEngine:
    tie_break = str(_setting(settings, "TIE_BREAK", PunchSource.BIOMETRIC.value)).upper()
    try:
        source = PunchSource(tie_break)
    except ValueError:
        raise ValidationError(f"TIE_BREAK must be APP or BIOMETRIC, got {tie_break!r}")

    policy = ReconciliationPolicy(
        tolerance_minutes=float(_setting(settings, "MATCH_TOLERANCE_MINUTES", constants.DEFAULT_MATCH_TOLERANCE_MINUTES)),
        tie_break=source,
    )
    return ReconciliationEngine(policy)


def build_container(*, db_config: dict, settings: Optional[dict] = None) -> Container:
    settings = settings or {}
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    users_repo = MySQLUserRepository(conn)
    shifts_repo = MySQLShiftRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    holidays_repo = MySQLHolidayRepository(
        conn,
        default_hours=float(_setting(settings, "DEFAULT_HOLIDAY_HOURS", constants.DEFAULT_HOLIDAY_HOURS)),
    )
    salaries_repo = MySQLSalaryRepository(conn)
    prana_repo = MySQLPranaRepository(conn)

    attendance_service = AttendanceService(
        attendance_repo,
        users_repo,
        shifts_repo,
        engine=build_engine(settings),
        status_factory=DayStatusFactory(
            grace_minutes=int(_setting(settings, "LATE_GRACE_MINUTES", constants.DEFAULT_LATE_GRACE_MINUTES)),
            half_day_hours=float(_setting(settings, "HALF_DAY_HOURS", constants.DEFAULT_HALF_DAY_HOURS)),
        ),
        geocoder=build_geocoder(settings),
    )
    salary_service = SalaryService(
        attendance_repo,
        users_repo,
        holidays_repo,
        salaries_repo,
        calculator=HourlySalaryCalculator(
            max_regular_hours_per_day=float(
                _setting(settings, "MAX_REGULAR_HOURS_PER_DAY", constants.DEFAULT_MAX_REGULAR_HOURS_PER_DAY)
            ),
        ),
    )

    return Container(
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo),
        attendance_service=attendance_service,
        payroll_report_service=PayrollReportService(attendance_repo),
        salary_service=salary_service,
        holiday_service=HolidayService(holidays_repo, users_repo),
        prana_service=PranaService(
            prana_repo,
            live_window_seconds=int(_setting(settings, "LIVE_WINDOW_SECONDS", constants.DEFAULT_LIVE_WINDOW_SECONDS)),
        ),
        conn=conn,
    )
