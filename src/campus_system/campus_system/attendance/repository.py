from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..timetable.model import TimetableEntry
from .model import (
    AttendanceMark,
    AttendanceRecord,
    AttendanceSession,
    StaffSessionRow,
    StudentRecordRow,
    SubjectRecordRow,
)


class AttendanceRepository(Protocol):
    def get_by_id(self, session_id: int) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def get_for_date_and_timetable(self, *, session_date: date, timetable_id: int) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def create_session(self, *, session_date: date, entry: TimetableEntry) -> AttendanceSession:
        """Insert a PENDING, unlocked session copied from ``entry``.

        Raises DuplicateError when (session_date, timetable_id) already exists.
        """

        raise NotImplementedError

    def save_marks(self, *, session_id: int, marks: Sequence[AttendanceMark]) -> None:
        """Upsert every mark and complete the session in one transaction.

        Raises NotFoundError / SessionLockedError (nothing is written then).
        """

        raise NotImplementedError

    def cancel(self, session_id: int) -> bool:
        """Set CANCELLED + locked unless already locked. False when locked."""

        raise NotImplementedError

    def lock(self, session_id: int) -> None:
        raise NotImplementedError

    def list_records_for_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_completed_records_for_student(self, student_id: int) -> Sequence[StudentRecordRow]:
        """Newest session first."""

        raise NotImplementedError

    def list_completed_records_for_subject(self, subject_id: int) -> Sequence[SubjectRecordRow]:
        raise NotImplementedError

    def list_sessions_for_staff(self, staff_id: int) -> Sequence[StaffSessionRow]:
        """Newest session first, with the number of records per session."""

        raise NotImplementedError
