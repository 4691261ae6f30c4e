from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import AttendanceStatus, SessionStatus
from ..core.exceptions import DuplicateError, NotFoundError, SessionLockedError, ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    fetchall,
    fetchone,
    is_duplicate_key,
    is_missing_reference,
    normalize_mysql_time,
)
from ..timetable.model import TimetableEntry
from .model import (
    AttendanceMark,
    AttendanceRecord,
    AttendanceSession,
    StaffSessionRow,
    StudentRecordRow,
    SubjectRecordRow,
)
from .repository import AttendanceRepository


_SESSION_COLUMNS = """
    s.session_id, s.session_date, s.timetable_id, s.staff_id, s.subject_id, s.dept_id,
    s.semester, s.section, s.start_time, s.end_time, s.status, s.is_locked
"""


def _to_session(r: dict) -> AttendanceSession:
    return AttendanceSession(
        session_id=int(r["session_id"]),
        session_date=r["session_date"],
        timetable_id=int(r["timetable_id"]),
        staff_id=int(r["staff_id"]),
        subject_id=int(r["subject_id"]),
        dept_id=int(r["dept_id"]),
        semester=r.get("semester"),
        section=r.get("section"),
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        status=SessionStatus(r["status"]),
        is_locked=bool(r.get("is_locked")),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, session_id: int) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SESSION_COLUMNS} FROM attendance_sessions s WHERE s.session_id=%s",
                (int(session_id),),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def get_for_date_and_timetable(self, *, session_date: date, timetable_id: int) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM attendance_sessions s
                WHERE s.session_date=%s AND s.timetable_id=%s
                """,
                (session_date, int(timetable_id)),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def create_session(self, *, session_date: date, entry: TimetableEntry) -> AttendanceSession:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_sessions
                        (session_date, timetable_id, staff_id, subject_id, dept_id,
                         semester, section, start_time, end_time, status, is_locked)
                    VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,0)
                    """,
                    (
                        session_date,
                        entry.timetable_id,
                        entry.staff_id,
                        entry.subject_id,
                        entry.dept_id,
                        entry.semester,
                        entry.section,
                        entry.start_time,
                        entry.end_time,
                        SessionStatus.PENDING.value,
                    ),
                )
                session_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            if is_duplicate_key(e):
                raise DuplicateError(
                    f"Session for timetable_id={entry.timetable_id} on {session_date} already exists"
                ) from e
            raise

        return AttendanceSession(
            session_id=session_id,
            session_date=session_date,
            timetable_id=entry.timetable_id,
            staff_id=entry.staff_id,
            subject_id=entry.subject_id,
            dept_id=entry.dept_id,
            semester=entry.semester,
            section=entry.section,
            start_time=entry.start_time,
            end_time=entry.end_time,
        )

    def save_marks(self, *, session_id: int, marks: Sequence[AttendanceMark]) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                # Row lock so a concurrent lock/cancel cannot interleave with the marks.
                cur.execute(
                    "SELECT is_locked FROM attendance_sessions WHERE session_id=%s FOR UPDATE",
                    (int(session_id),),
                )
                r = fetchone(cur)
                if not r:
                    raise NotFoundError("Attendance session not found")
                if bool(r["is_locked"]):
                    raise SessionLockedError("This attendance session is locked and cannot be modified")

                if marks:
                    cur.executemany(
                        """
                        INSERT INTO attendance_records (session_id, student_id, status, remarks)
                        VALUES (%s,%s,%s,%s)
                        ON DUPLICATE KEY UPDATE status=VALUES(status), remarks=VALUES(remarks)
                        """,
                        [(int(session_id), m.student_id, m.status.value, m.remarks) for m in marks],
                    )

                cur.execute(
                    "UPDATE attendance_sessions SET status=%s WHERE session_id=%s",
                    (SessionStatus.COMPLETED.value, int(session_id)),
                )
        except mysql.connector.IntegrityError as e:
            if is_missing_reference(e):
                raise ValidationError("Unknown student") from e
            raise

    def cancel(self, session_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_sessions
                SET status=%s, is_locked=1
                WHERE session_id=%s AND is_locked=0
                """,
                (SessionStatus.CANCELLED.value, int(session_id)),
            )
            return cur.rowcount > 0

    def lock(self, session_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE attendance_sessions SET is_locked=1 WHERE session_id=%s", (int(session_id),))

    def list_records_for_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT record_id, session_id, student_id, status, remarks
                FROM attendance_records
                WHERE session_id=%s
                ORDER BY student_id ASC
                """,
                (int(session_id),),
            )
            return [
                AttendanceRecord(
                    record_id=int(r["record_id"]),
                    session_id=int(r["session_id"]),
                    student_id=int(r["student_id"]),
                    status=AttendanceStatus(r["status"]),
                    remarks=r.get("remarks"),
                )
                for r in fetchall(cur)
            ]

    def list_completed_records_for_student(self, student_id: int) -> Sequence[StudentRecordRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT ar.record_id, ar.session_id, ar.status, ar.remarks,
                       s.session_date, s.subject_id,
                       sub.subject_name, u.full_name AS staff_name
                FROM attendance_records ar
                JOIN attendance_sessions s ON s.session_id = ar.session_id
                LEFT JOIN subjects sub ON sub.subject_id = s.subject_id
                LEFT JOIN users u ON u.user_id = s.staff_id
                WHERE ar.student_id=%s AND s.status=%s
                ORDER BY s.session_date DESC, s.start_time DESC
                """,
                (int(student_id), SessionStatus.COMPLETED.value),
            )
            return [
                StudentRecordRow(
                    record_id=int(r["record_id"]),
                    session_id=int(r["session_id"]),
                    session_date=r["session_date"],
                    subject_id=int(r["subject_id"]),
                    subject_name=r.get("subject_name"),
                    staff_name=r.get("staff_name"),
                    status=AttendanceStatus(r["status"]),
                    remarks=r.get("remarks"),
                )
                for r in fetchall(cur)
            ]

    def list_completed_records_for_subject(self, subject_id: int) -> Sequence[SubjectRecordRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT ar.student_id, ar.status, u.full_name, sp.regno
                FROM attendance_records ar
                JOIN attendance_sessions s ON s.session_id = ar.session_id
                JOIN users u ON u.user_id = ar.student_id
                LEFT JOIN student_profiles sp ON sp.user_id = ar.student_id
                WHERE s.subject_id=%s AND s.status=%s
                ORDER BY sp.regno ASC, u.full_name ASC
                """,
                (int(subject_id), SessionStatus.COMPLETED.value),
            )
            return [
                SubjectRecordRow(
                    student_id=int(r["student_id"]),
                    student_name=r["full_name"],
                    regno=r.get("regno"),
                    status=AttendanceStatus(r["status"]),
                )
                for r in fetchall(cur)
            ]

    def list_sessions_for_staff(self, staff_id: int) -> Sequence[StaffSessionRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS},
                       sub.subject_name,
                       (SELECT COUNT(*) FROM attendance_records ar WHERE ar.session_id = s.session_id) AS record_count
                FROM attendance_sessions s
                LEFT JOIN subjects sub ON sub.subject_id = s.subject_id
                WHERE s.staff_id=%s
                ORDER BY s.session_date DESC, s.start_time DESC
                """,
                (int(staff_id),),
            )
            return [
                StaffSessionRow(
                    session=_to_session(r),
                    subject_name=r.get("subject_name"),
                    record_count=int(r.get("record_count") or 0),
                )
                for r in fetchall(cur)
            ]
