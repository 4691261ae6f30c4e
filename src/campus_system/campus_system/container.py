from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .access.policy import AccessPolicy, RoleAccessPolicy
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.report_service import AttendanceReportService
from .attendance.service import AttendanceSessionService
from .core.constants import DEFAULT_SUNDAY_FALLBACK
from .core.enums import DayOfWeek
from .database.connection import DBConfig, DatabaseConnection
from .timetable.mysql_timetable_repository import MySQLTimetableRepository
from .timetable.service import TimetableService
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService


@dataclass(frozen=True)
class Container:
    access: AccessPolicy

    auth_service: AuthService
    timetable_service: TimetableService
    attendance_service: AttendanceSessionService
    attendance_report_service: AttendanceReportService


def build_services(
    *,
    users_repo,
    timetable_repo,
    attendance_repo,
    access: Optional[AccessPolicy] = None,
    sunday_fallback: Optional[DayOfWeek] = DEFAULT_SUNDAY_FALLBACK,
) -> Container:
    """Wire services over any repository implementations (MySQL or fakes)."""

    access = access or RoleAccessPolicy()
    return Container(
        access=access,
        auth_service=AuthService(users_repo),
        timetable_service=TimetableService(timetable_repo, access),
        attendance_service=AttendanceSessionService(
            attendance_repo,
            timetable_repo,
            users_repo,
            access,
            sunday_fallback=sunday_fallback,
        ),
        attendance_report_service=AttendanceReportService(attendance_repo, access),
    )


def build_container(*, db_config: dict, sunday_fallback: Optional[DayOfWeek] = DEFAULT_SUNDAY_FALLBACK) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return build_services(
        users_repo=MySQLUserRepository(conn),
        timetable_repo=MySQLTimetableRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        sunday_fallback=sunday_fallback,
    )
