from __future__ import annotations

from datetime import time
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import DayOfWeek
from ..core.exceptions import ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_missing_reference, normalize_mysql_time
from .model import TimetableDraft, TimetableEntry, TimetableListRow
from .repository import TimetableRepository

_ENTRY_COLUMNS = """
    tt.timetable_id, tt.staff_id, tt.subject_id, tt.dept_id, tt.day_of_week,
    tt.start_time, tt.end_time, tt.room, tt.semester, tt.section
"""

# Chronological, not alphabetical, day order.
_DAY_ORDER_SQL = "FIELD(tt.day_of_week, 'MONDAY', 'TUESDAY', 'WEDNESDAY', 'THURSDAY', 'FRIDAY', 'SATURDAY')"


def _to_entry(r: dict) -> TimetableEntry:
    return TimetableEntry(
        timetable_id=int(r["timetable_id"]),
        staff_id=int(r["staff_id"]),
        subject_id=int(r["subject_id"]),
        dept_id=int(r["dept_id"]),
        day_of_week=DayOfWeek(r["day_of_week"]),
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        room=r.get("room"),
        semester=r.get("semester"),
        section=r.get("section"),
    )


def _to_list_row(r: dict) -> TimetableListRow:
    return TimetableListRow(
        entry=_to_entry(r),
        subject_name=r.get("subject_name"),
        dept_name=r.get("dept_name"),
        staff_name=r.get("staff_name"),
    )


class MySQLTimetableRepository(TimetableRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, timetable_id: int) -> Optional[TimetableEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM timetable_entries tt WHERE tt.timetable_id=%s",
                (int(timetable_id),),
            )
            r = fetchone(cur)
            return _to_entry(r) if r else None

    def _find_overlap(
        self,
        *,
        column: str,
        value: object,
        day_of_week: DayOfWeek,
        start_time: time,
        end_time: time,
        exclude_id: Optional[int],
    ) -> Optional[TimetableEntry]:
        # Half-open overlap: existing.start < proposed.end AND existing.end > proposed.start
        clauses = [f"tt.{column}=%s", "tt.day_of_week=%s", "tt.start_time < %s", "tt.end_time > %s"]
        params: list[object] = [value, day_of_week.value, end_time, start_time]
        if exclude_id is not None:
            clauses.append("tt.timetable_id <> %s")
            params.append(int(exclude_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ENTRY_COLUMNS}
                FROM timetable_entries tt
                WHERE {where}
                ORDER BY tt.start_time ASC
                LIMIT 1
                """,
                tuple(params),
            )
            r = fetchone(cur)
            return _to_entry(r) if r else None

    def find_staff_clash(
        self,
        *,
        staff_id: int,
        day_of_week: DayOfWeek,
        start_time: time,
        end_time: time,
        exclude_id: Optional[int] = None,
    ) -> Optional[TimetableEntry]:
        return self._find_overlap(
            column="staff_id",
            value=int(staff_id),
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            exclude_id=exclude_id,
        )

    def find_room_clash(
        self,
        *,
        room: str,
        day_of_week: DayOfWeek,
        start_time: time,
        end_time: time,
        exclude_id: Optional[int] = None,
    ) -> Optional[TimetableEntry]:
        return self._find_overlap(
            column="room",
            value=room,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            exclude_id=exclude_id,
        )

    def create(self, draft: TimetableDraft) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO timetable_entries
                        (staff_id, subject_id, dept_id, day_of_week, start_time, end_time, room, semester, section)
                    VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        draft.staff_id,
                        draft.subject_id,
                        draft.dept_id,
                        draft.day_of_week.value,
                        draft.start_time,
                        draft.end_time,
                        draft.room,
                        draft.semester,
                        draft.section,
                    ),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            if is_missing_reference(e):
                raise ValidationError("Unknown staff, subject or department") from e
            raise

    def update(self, entry: TimetableEntry) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE timetable_entries
                    SET staff_id=%s, subject_id=%s, dept_id=%s, day_of_week=%s,
                        start_time=%s, end_time=%s, room=%s, semester=%s, section=%s
                    WHERE timetable_id=%s
                    """,
                    (
                        entry.staff_id,
                        entry.subject_id,
                        entry.dept_id,
                        entry.day_of_week.value,
                        entry.start_time,
                        entry.end_time,
                        entry.room,
                        entry.semester,
                        entry.section,
                        entry.timetable_id,
                    ),
                )
        except mysql.connector.IntegrityError as e:
            if is_missing_reference(e):
                raise ValidationError("Unknown staff, subject or department") from e
            raise

    def delete_cascade(self, timetable_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                DELETE ar FROM attendance_records ar
                JOIN attendance_sessions s ON s.session_id = ar.session_id
                WHERE s.timetable_id=%s
                """,
                (int(timetable_id),),
            )
            cur.execute("DELETE FROM attendance_sessions WHERE timetable_id=%s", (int(timetable_id),))
            cur.execute("DELETE FROM timetable_entries WHERE timetable_id=%s", (int(timetable_id),))
            return cur.rowcount > 0

    def list_for_staff_and_day(self, *, staff_id: int, day_of_week: DayOfWeek) -> Sequence[TimetableEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ENTRY_COLUMNS}
                FROM timetable_entries tt
                WHERE tt.staff_id=%s AND tt.day_of_week=%s
                ORDER BY tt.start_time ASC
                """,
                (int(staff_id), day_of_week.value),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def _list_joined(self, *, where: str, param: int) -> Sequence[TimetableListRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ENTRY_COLUMNS},
                       sub.subject_name, d.dept_name, u.full_name AS staff_name
                FROM timetable_entries tt
                LEFT JOIN subjects sub ON sub.subject_id = tt.subject_id
                LEFT JOIN departments d ON d.dept_id = tt.dept_id
                LEFT JOIN users u ON u.user_id = tt.staff_id
                WHERE {where}
                ORDER BY {_DAY_ORDER_SQL} ASC, tt.start_time ASC
                """,
                (int(param),),
            )
            return [_to_list_row(r) for r in fetchall(cur)]

    def list_for_staff(self, staff_id: int) -> Sequence[TimetableListRow]:
        return self._list_joined(where="tt.staff_id=%s", param=staff_id)

    def list_for_department(self, dept_id: int) -> Sequence[TimetableListRow]:
        return self._list_joined(where="tt.dept_id=%s", param=dept_id)
