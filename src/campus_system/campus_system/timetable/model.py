from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import time
from typing import FrozenSet, Optional

from ..core.enums import DayOfWeek

CLEARABLE_FIELDS = frozenset({"room", "semester", "section"})


@dataclass(frozen=True)
class TimetableDraft:
    """A proposed weekly slot, not yet persisted."""

    staff_id: int
    subject_id: int
    dept_id: int
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    room: Optional[str] = None
    semester: Optional[int] = None
    section: Optional[str] = None


@dataclass(frozen=True)
class TimetableEntry:
    """Domain entity: a recurring weekly class slot."""

    timetable_id: int
    staff_id: int
    subject_id: int
    dept_id: int
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    room: Optional[str] = None
    semester: Optional[int] = None
    section: Optional[str] = None

    @classmethod
    def from_draft(cls, timetable_id: int, draft: TimetableDraft) -> "TimetableEntry":
        return cls(
            timetable_id=int(timetable_id),
            staff_id=draft.staff_id,
            subject_id=draft.subject_id,
            dept_id=draft.dept_id,
            day_of_week=draft.day_of_week,
            start_time=draft.start_time,
            end_time=draft.end_time,
            room=draft.room,
            semester=draft.semester,
            section=draft.section,
        )


@dataclass(frozen=True)
class TimetableChanges:
    """Partial update.

    ``None`` keeps the stored value; names in ``cleared`` are set to NULL
    (only the nullable fields room, semester and section can be cleared).
    """

    staff_id: Optional[int] = None
    subject_id: Optional[int] = None
    dept_id: Optional[int] = None
    day_of_week: Optional[DayOfWeek] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    room: Optional[str] = None
    semester: Optional[int] = None
    section: Optional[str] = None
    cleared: FrozenSet[str] = frozenset()

    def __post_init__(self):
        unknown = set(self.cleared) - CLEARABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot clear required fields: {sorted(unknown)}")

    def apply_to(self, entry: TimetableEntry) -> TimetableEntry:
        changed = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "cleared" and getattr(self, f.name) is not None
        }
        changed.update({name: None for name in self.cleared})
        return replace(entry, **changed)


@dataclass(frozen=True)
class TimetableListRow:
    """Read-model for timetable listings (joined with names)."""

    entry: TimetableEntry
    subject_name: Optional[str]
    dept_name: Optional[str]
    staff_name: Optional[str]
