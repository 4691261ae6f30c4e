from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for access control."""

    ADMIN = "ADMIN"
    STAFF = "STAFF"
    STUDENT = "STUDENT"


class DayOfWeek(str, Enum):
    """Teaching days. Sunday is not part of the timetable week."""

    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"


class SessionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class AttendanceStatus(str, Enum):
    """Per-student mark stored on an attendance record."""

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
