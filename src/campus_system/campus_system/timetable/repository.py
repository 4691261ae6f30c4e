from __future__ import annotations

from datetime import time
from typing import Optional, Protocol, Sequence

from ..core.enums import DayOfWeek
from .model import TimetableDraft, TimetableEntry, TimetableListRow


class TimetableRepository(Protocol):
    def get_by_id(self, timetable_id: int) -> Optional[TimetableEntry]:
        raise NotImplementedError

    def find_staff_clash(
        self,
        *,
        staff_id: int,
        day_of_week: DayOfWeek,
        start_time: time,
        end_time: time,
        exclude_id: Optional[int] = None,
    ) -> Optional[TimetableEntry]:
        """First entry of the staff member on that day overlapping [start, end)."""

        raise NotImplementedError

    def find_room_clash(
        self,
        *,
        room: str,
        day_of_week: DayOfWeek,
        start_time: time,
        end_time: time,
        exclude_id: Optional[int] = None,
    ) -> Optional[TimetableEntry]:
        raise NotImplementedError

    def create(self, draft: TimetableDraft) -> int:
        """Insert and return timetable_id."""

        raise NotImplementedError

    def update(self, entry: TimetableEntry) -> None:
        raise NotImplementedError

    def delete_cascade(self, timetable_id: int) -> bool:
        """Delete the entry with its sessions and their records atomically."""

        raise NotImplementedError

    def list_for_staff_and_day(self, *, staff_id: int, day_of_week: DayOfWeek) -> Sequence[TimetableEntry]:
        raise NotImplementedError

    def list_for_staff(self, staff_id: int) -> Sequence[TimetableListRow]:
        raise NotImplementedError

    def list_for_department(self, dept_id: int) -> Sequence[TimetableListRow]:
        raise NotImplementedError
