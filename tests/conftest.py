from __future__ import annotations

from dataclasses import replace
from datetime import date, time
from typing import Optional

import pytest

from src.campus_system.campus_system.access.policy import Principal
from src.campus_system.campus_system.attendance.model import (
    AttendanceRecord,
    AttendanceSession,
    StaffSessionRow,
    StudentRecordRow,
    SubjectRecordRow,
)
from src.campus_system.campus_system.container import build_services
from src.campus_system.campus_system.core.constants import WEEK_ORDER
from src.campus_system.campus_system.core.enums import DayOfWeek, Role, SessionStatus
from src.campus_system.campus_system.core.exceptions import DuplicateError, NotFoundError, SessionLockedError
from src.campus_system.campus_system.timetable.model import TimetableDraft, TimetableEntry, TimetableListRow
from src.campus_system.campus_system.timetable.service import intervals_overlap
from src.campus_system.campus_system.users.model import RosterStudent, User

MONDAY = date(2026, 10, 19)
SUNDAY = date(2026, 10, 18)


class InMemoryUsers:
    def __init__(self):
        self.users: dict[int, User] = {}
        self.profiles: dict[int, dict] = {}

    def add(self, user: User, *, regno=None, semester=None, section=None) -> User:
        self.users[user.user_id] = user
        if user.role == Role.STUDENT:
            self.profiles[user.user_id] = {"regno": regno, "semester": semester, "section": section}
        return user

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.users.get(user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.username == username), None)

    def list_students_for_class(self, *, dept_id, semester, section):
        out = []
        for u in self.users.values():
            p = self.profiles.get(u.user_id)
            if u.role != Role.STUDENT or not u.is_active or p is None:
                continue
            if u.dept_id == dept_id and p["semester"] == semester and p["section"] == section:
                out.append(
                    RosterStudent(
                        user_id=u.user_id,
                        full_name=u.full_name,
                        username=u.username,
                        dept_id=u.dept_id,
                        regno=p["regno"],
                        semester=p["semester"],
                        section=p["section"],
                    )
                )
        return out


class InMemoryTimetable:
    def __init__(self):
        self.entries: dict[int, TimetableEntry] = {}
        self.attendance: Optional["InMemoryAttendance"] = None
        self.subject_names: dict[int, str] = {}
        self._id = 0

    def get_by_id(self, timetable_id: int) -> Optional[TimetableEntry]:
        return self.entries.get(timetable_id)

    def _find(self, pred, *, day_of_week, start_time, end_time, exclude_id):
        for e in self.entries.values():
            if e.timetable_id == exclude_id or e.day_of_week != day_of_week or not pred(e):
                continue
            if intervals_overlap(e.start_time, e.end_time, start_time, end_time):
                return e
        return None

    def find_staff_clash(self, *, staff_id, day_of_week, start_time, end_time, exclude_id=None):
        return self._find(
            lambda e: e.staff_id == staff_id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            exclude_id=exclude_id,
        )

    def find_room_clash(self, *, room, day_of_week, start_time, end_time, exclude_id=None):
        return self._find(
            lambda e: e.room == room,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            exclude_id=exclude_id,
        )

    def create(self, draft: TimetableDraft) -> int:
        self._id += 1
        self.entries[self._id] = TimetableEntry.from_draft(self._id, draft)
        return self._id

    def update(self, entry: TimetableEntry) -> None:
        self.entries[entry.timetable_id] = entry

    def delete_cascade(self, timetable_id: int) -> bool:
        if self.attendance is not None:
            self.attendance.drop_for_timetable(timetable_id)
        return self.entries.pop(timetable_id, None) is not None

    def list_for_staff_and_day(self, *, staff_id, day_of_week):
        items = [e for e in self.entries.values() if e.staff_id == staff_id and e.day_of_week == day_of_week]
        return sorted(items, key=lambda e: e.start_time)

    def _rows(self, items):
        items = sorted(items, key=lambda e: (WEEK_ORDER.index(e.day_of_week), e.start_time))
        return [
            TimetableListRow(entry=e, subject_name=self.subject_names.get(e.subject_id), dept_name=None, staff_name=None)
            for e in items
        ]

    def list_for_staff(self, staff_id: int):
        return self._rows([e for e in self.entries.values() if e.staff_id == staff_id])

    def list_for_department(self, dept_id: int):
        return self._rows([e for e in self.entries.values() if e.dept_id == dept_id])


class InMemoryAttendance:
    def __init__(self, users: Optional[InMemoryUsers] = None):
        self.sessions: dict[int, AttendanceSession] = {}
        self.records: dict[tuple[int, int], AttendanceRecord] = {}
        self.users = users
        self.fail_on_student: Optional[int] = None
        self.create_calls = 0
        self._id = 0
        self._record_id = 0

    def get_by_id(self, session_id: int) -> Optional[AttendanceSession]:
        return self.sessions.get(session_id)

    def get_for_date_and_timetable(self, *, session_date, timetable_id):
        return next(
            (s for s in self.sessions.values() if s.session_date == session_date and s.timetable_id == timetable_id),
            None,
        )

    def create_session(self, *, session_date, entry: TimetableEntry) -> AttendanceSession:
        self.create_calls += 1
        if self.get_for_date_and_timetable(session_date=session_date, timetable_id=entry.timetable_id):
            raise DuplicateError("duplicate session")
        self._id += 1
        session = AttendanceSession(
            session_id=self._id,
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
        self.sessions[session.session_id] = session
        return session

    def save_marks(self, *, session_id, marks) -> None:
        session = self.sessions.get(session_id)
        if not session:
            raise NotFoundError("Attendance session not found")
        if session.is_locked:
            raise SessionLockedError("locked")

        staged = dict(self.records)
        for m in marks:
            if m.student_id == self.fail_on_student:
                raise RuntimeError("simulated write failure")
            existing = staged.get((session_id, m.student_id))
            if existing:
                staged[(session_id, m.student_id)] = replace(existing, status=m.status, remarks=m.remarks)
            else:
                self._record_id += 1
                staged[(session_id, m.student_id)] = AttendanceRecord(
                    record_id=self._record_id,
                    session_id=session_id,
                    student_id=m.student_id,
                    status=m.status,
                    remarks=m.remarks,
                )

        self.records = staged
        self.sessions[session_id] = replace(session, status=SessionStatus.COMPLETED)

    def cancel(self, session_id: int) -> bool:
        session = self.sessions[session_id]
        if session.is_locked:
            return False
        self.sessions[session_id] = replace(session, status=SessionStatus.CANCELLED, is_locked=True)
        return True

    def lock(self, session_id: int) -> None:
        self.sessions[session_id] = replace(self.sessions[session_id], is_locked=True)

    def drop_for_timetable(self, timetable_id: int) -> None:
        doomed = {sid for sid, s in self.sessions.items() if s.timetable_id == timetable_id}
        self.records = {k: v for k, v in self.records.items() if k[0] not in doomed}
        for sid in doomed:
            del self.sessions[sid]

    def list_records_for_session(self, session_id: int):
        return sorted((r for (sid, _), r in self.records.items() if sid == session_id), key=lambda r: r.student_id)

    def _name(self, user_id: int) -> str:
        user = self.users.get_by_id(user_id) if self.users else None
        return user.full_name if user else f"user-{user_id}"

    def list_completed_records_for_student(self, student_id: int):
        rows = []
        for (sid, stu), r in self.records.items():
            s = self.sessions[sid]
            if stu != student_id or s.status != SessionStatus.COMPLETED:
                continue
            rows.append(
                StudentRecordRow(
                    record_id=r.record_id,
                    session_id=sid,
                    session_date=s.session_date,
                    subject_id=s.subject_id,
                    subject_name=None,
                    staff_name=self._name(s.staff_id),
                    status=r.status,
                    remarks=r.remarks,
                )
            )
        return sorted(rows, key=lambda r: r.session_date, reverse=True)

    def list_completed_records_for_subject(self, subject_id: int):
        rows = []
        for (sid, stu), r in self.records.items():
            s = self.sessions[sid]
            if s.subject_id != subject_id or s.status != SessionStatus.COMPLETED:
                continue
            regno = self.users.profiles.get(stu, {}).get("regno") if self.users else None
            rows.append(SubjectRecordRow(student_id=stu, student_name=self._name(stu), regno=regno, status=r.status))
        return rows

    def list_sessions_for_staff(self, staff_id: int):
        items = [s for s in self.sessions.values() if s.staff_id == staff_id]
        items.sort(key=lambda s: (s.session_date, s.start_time), reverse=True)
        return [
            StaffSessionRow(
                session=s,
                subject_name=None,
                record_count=sum(1 for (sid, _) in self.records if sid == s.session_id),
            )
            for s in items
        ]


@pytest.fixture
def users_repo():
    return InMemoryUsers()


@pytest.fixture
def attendance_repo(users_repo):
    return InMemoryAttendance(users_repo)


@pytest.fixture
def timetable_repo(attendance_repo):
    repo = InMemoryTimetable()
    repo.attendance = attendance_repo
    return repo


@pytest.fixture
def services(users_repo, timetable_repo, attendance_repo):
    return build_services(users_repo=users_repo, timetable_repo=timetable_repo, attendance_repo=attendance_repo)


@pytest.fixture
def admin():
    return Principal(user_id=1, role=Role.ADMIN, full_name="Admin")


@pytest.fixture
def staff_a():
    return Principal(user_id=10, role=Role.STAFF, full_name="Staff A")


@pytest.fixture
def staff_b():
    return Principal(user_id=11, role=Role.STAFF, full_name="Staff B")


@pytest.fixture
def monday():
    return MONDAY


def make_draft(**overrides) -> TimetableDraft:
    values = dict(
        staff_id=10,
        subject_id=100,
        dept_id=1,
        day_of_week=DayOfWeek.MONDAY,
        start_time=time(9, 0),
        end_time=time(10, 0),
        room=None,
        semester=5,
        section="A",
    )
    values.update(overrides)
    return TimetableDraft(**values)


@pytest.fixture
def draft_factory():
    return make_draft


class RecordingCursor:
    def __init__(self, db: "RecordingDatabase", conn_no: int):
        self._db = db
        self._conn_no = conn_no
        self.rowcount = db.rowcount
        self.lastrowid = db.lastrowid

    def execute(self, sql, params=None):
        self._db.log.append(("execute", self._conn_no, " ".join(sql.split()), params))
        self._db.maybe_fail("execute", sql)

    def executemany(self, sql, seq_params):
        self._db.log.append(("executemany", self._conn_no, " ".join(sql.split()), list(seq_params)))
        self._db.maybe_fail("executemany", sql)

    def fetchone(self):
        return self._db.rows.pop(0) if self._db.rows else None

    def fetchall(self):
        rows, self._db.rows = self._db.rows, []
        return rows

    def close(self):
        pass


class RecordingConnection:
    def __init__(self, db: "RecordingDatabase", conn_no: int):
        self._db = db
        self._conn_no = conn_no

    def cursor(self, dictionary=False):
        return RecordingCursor(self._db, self._conn_no)

    def commit(self):
        self._db.log.append(("commit", self._conn_no, None, None))

    def rollback(self):
        self._db.log.append(("rollback", self._conn_no, None, None))

    def close(self):
        self._db.log.append(("close", self._conn_no, None, None))


class RecordingDatabase:
    """Drop-in for DatabaseConnection that records SQL and transaction calls.

    ``rows`` are handed out by fetchone/fetchall in order; ``fail_on`` makes
    the next matching cursor call raise.
    """

    def __init__(self):
        self.log: list[tuple] = []
        self.rows: list[dict] = []
        self.rowcount = 1
        self.lastrowid = 1
        self.connections = 0
        self._failures: list[tuple] = []

    def connect(self, *, with_database: bool = True):
        self.connections += 1
        return RecordingConnection(self, self.connections)

    def fail_on(self, method: str, error: Exception, *, when: str = "") -> None:
        self._failures.append((method, when, error))

    def maybe_fail(self, method: str, sql: str) -> None:
        for i, (m, when, error) in enumerate(self._failures):
            if m == method and when in sql:
                del self._failures[i]
                raise error

    def calls(self, kind: str) -> list[tuple]:
        return [e for e in self.log if e[0] == kind]

    def statements(self) -> list[str]:
        return [e[2] for e in self.log if e[0] in ("execute", "executemany")]


@pytest.fixture
def recording_db():
    return RecordingDatabase()
