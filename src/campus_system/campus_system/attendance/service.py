from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..access.policy import AccessPolicy, Capability, Principal
from ..common.datetime_utils import now_local, resolve_day_of_week
from ..core.constants import DEFAULT_SUNDAY_FALLBACK
from ..core.enums import DayOfWeek
from ..core.exceptions import DuplicateError, NotFoundError, SessionLockedError
from ..timetable.model import TimetableEntry
from ..timetable.repository import TimetableRepository
from ..users.model import RosterStudent
from ..users.repository import UserRepository
from .model import AttendanceMark, AttendanceRecord, AttendanceSession, SessionWithEntry
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceSessionService:
    """Use case: take attendance against today's timetable.

    Sessions are materialized lazily: the first request for "today" creates
    one PENDING session per matching timetable entry, later requests return
    the same rows. Lifecycle:

        PENDING --mark--> COMPLETED
        PENDING --cancel--> CANCELLED (+ locked)

    Once locked, a session accepts neither marks nor cancellation.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        timetable: TimetableRepository,
        users: UserRepository,
        access: AccessPolicy,
        *,
        sunday_fallback: Optional[DayOfWeek] = DEFAULT_SUNDAY_FALLBACK,
    ):
        self._attendance = attendance
        self._timetable = timetable
        self._users = users
        self._access = access
        self._sunday_fallback = sunday_fallback

    def _require_session(self, session_id: int) -> AttendanceSession:
        session = self._attendance.get_by_id(int(session_id))
        if not session:
            raise NotFoundError("Attendance session not found")
        return session

    def _get_or_create(self, *, today: date, entry: TimetableEntry) -> AttendanceSession:
        existing = self._attendance.get_for_date_and_timetable(session_date=today, timetable_id=entry.timetable_id)
        if existing:
            return existing

        try:
            created = self._attendance.create_session(session_date=today, entry=entry)
            logger.info("Created session_id=%s for timetable_id=%s on %s", created.session_id, entry.timetable_id, today)
            return created
        except DuplicateError:
            # Another request created it between our read and insert.
            logger.info("Session for timetable_id=%s on %s created concurrently, re-reading", entry.timetable_id, today)
            existing = self._attendance.get_for_date_and_timetable(session_date=today, timetable_id=entry.timetable_id)
            if not existing:
                raise
            return existing

    def get_today_sessions(self, *, actor: Principal, today: date | None = None) -> list[SessionWithEntry]:
        self._access.require(actor, Capability.TAKE_ATTENDANCE)

        today = today or now_local().date()
        day_of_week = resolve_day_of_week(today, sunday_fallback=self._sunday_fallback)
        if day_of_week is None:
            return []

        entries = self._timetable.list_for_staff_and_day(staff_id=actor.user_id, day_of_week=day_of_week)
        return [SessionWithEntry(session=self._get_or_create(today=today, entry=e), timetable=e) for e in entries]

    def get_students_for_session(self, *, actor: Principal, session_id: int) -> Sequence[RosterStudent]:
        self._access.require(actor, Capability.TAKE_ATTENDANCE)

        session = self._require_session(session_id)
        return self._users.list_students_for_class(
            dept_id=session.dept_id,
            semester=session.semester,
            section=session.section,
        )

    def get_session_records(self, *, actor: Principal, session_id: int) -> Sequence[AttendanceRecord]:
        self._access.require(actor, Capability.TAKE_ATTENDANCE)

        session = self._require_session(session_id)
        return self._attendance.list_records_for_session(session.session_id)

    def mark_attendance(self, *, actor: Principal, session_id: int, marks: Sequence[AttendanceMark]) -> None:
        self._access.require(actor, Capability.TAKE_ATTENDANCE)

        session = self._require_session(session_id)
        if session.is_locked:
            raise SessionLockedError("This attendance session is locked and cannot be modified")

        self._attendance.save_marks(session_id=session.session_id, marks=list(marks))
        logger.info("Marked %s students on session_id=%s", len(marks), session.session_id)

    def cancel_session(self, *, actor: Principal, session_id: int) -> None:
        self._access.require(actor, Capability.TAKE_ATTENDANCE)

        session = self._require_session(session_id)
        if session.is_locked or not self._attendance.cancel(session.session_id):
            raise SessionLockedError("Locked sessions cannot be cancelled")
        logger.info("Cancelled session_id=%s", session.session_id)

    def lock_session(self, *, actor: Principal, session_id: int) -> None:
        self._access.require(actor, Capability.LOCK_SESSION)

        session = self._require_session(session_id)
        self._attendance.lock(session.session_id)
        logger.info("Locked session_id=%s", session.session_id)
