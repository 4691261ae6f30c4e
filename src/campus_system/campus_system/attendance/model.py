from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus, SessionStatus
from ..timetable.model import TimetableEntry


@dataclass(frozen=True)
class AttendanceSession:
    """Domain entity: one calendar-day instance of a timetable entry.

    Staff/subject/department/semester/section are copied from the entry when
    the session is created and do not follow later timetable edits.
    """

    session_id: int
    session_date: date
    timetable_id: int
    staff_id: int
    subject_id: int
    dept_id: int
    semester: Optional[int]
    section: Optional[str]
    start_time: time
    end_time: time
    status: SessionStatus = SessionStatus.PENDING
    is_locked: bool = False


@dataclass(frozen=True)
class AttendanceRecord:
    record_id: int
    session_id: int
    student_id: int
    status: AttendanceStatus
    remarks: Optional[str] = None


@dataclass(frozen=True)
class AttendanceMark:
    """One line of a mark request."""

    student_id: int
    status: AttendanceStatus
    remarks: Optional[str] = None


@dataclass(frozen=True)
class SessionWithEntry:
    session: AttendanceSession
    timetable: TimetableEntry


@dataclass(frozen=True)
class StudentRecordRow:
    """Read-model: a student's mark joined with its session."""

    record_id: int
    session_id: int
    session_date: date
    subject_id: int
    subject_name: Optional[str]
    staff_name: Optional[str]
    status: AttendanceStatus
    remarks: Optional[str] = None


@dataclass(frozen=True)
class SubjectRecordRow:
    """Read-model: one mark of a subject, with the student's labels."""

    student_id: int
    student_name: str
    regno: Optional[str]
    status: AttendanceStatus


@dataclass(frozen=True)
class StaffSessionRow:
    session: AttendanceSession
    subject_name: Optional[str]
    record_count: int


@dataclass(frozen=True)
class StudentAttendanceReport:
    student_id: int
    total_sessions: int
    present_sessions: int
    percentage: float
    records: Sequence[StudentRecordRow]


@dataclass(frozen=True)
class SubjectAttendanceRow:
    student_id: int
    name: str
    regno: Optional[str]
    total: int
    present: int
    percentage: float


def attendance_percentage(present: int, total: int) -> float:
    """100 * present / total, defined as 0.0 when there is nothing to count."""
    if total <= 0:
        return 0.0
    return present / total * 100
