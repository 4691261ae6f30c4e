from __future__ import annotations

import logging
from datetime import time
from typing import Optional, Sequence

from ..access.policy import AccessPolicy, Capability, Principal
from ..core.enums import DayOfWeek
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from .model import TimetableChanges, TimetableDraft, TimetableEntry, TimetableListRow
from .repository import TimetableRepository

logger = logging.getLogger(__name__)


def intervals_overlap(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    """Half-open [start, end) overlap; back-to-back slots do not overlap.

    Reference definition of a clash. Repositories evaluate the same predicate
    in their own query language (MySQL binds ``start_time < end AND
    end_time > start``) and must agree with this function.
    """
    return a_start < b_end and a_end > b_start


class TimetableService:
    """Use case: maintain weekly timetable slots without clashes.

    Rules checked on create and update:

    - start time strictly before end time
    - a staff member is never booked twice at the same time on a day
    - a room is never booked twice at the same time on a day (only when a
      room is given)
    """

    def __init__(self, timetable: TimetableRepository, access: AccessPolicy):
        self._timetable = timetable
        self._access = access

    def _check_slot(
        self,
        *,
        staff_id: int,
        day_of_week: DayOfWeek,
        start_time: time,
        end_time: time,
        room: Optional[str],
        exclude_id: Optional[int] = None,
    ) -> None:
        if start_time >= end_time:
            raise ValidationError("Start time must be before end time")

        clash = self._timetable.find_staff_clash(
            staff_id=staff_id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            exclude_id=exclude_id,
        )
        if clash:
            logger.info(
                "Staff clash for staff=%s on %s with timetable_id=%s",
                staff_id,
                day_of_week.value,
                clash.timetable_id,
            )
            raise ConflictError("Timetable clash detected for this staff member")

        if room:
            room_clash = self._timetable.find_room_clash(
                room=room,
                day_of_week=day_of_week,
                start_time=start_time,
                end_time=end_time,
                exclude_id=exclude_id,
            )
            if room_clash:
                logger.info("Room %s already booked on %s (timetable_id=%s)", room, day_of_week.value, room_clash.timetable_id)
                raise ConflictError("Room is already booked at this time")

    def create(self, *, actor: Principal, draft: TimetableDraft) -> TimetableEntry:
        self._access.require(actor, Capability.MANAGE_TIMETABLE)

        self._check_slot(
            staff_id=draft.staff_id,
            day_of_week=draft.day_of_week,
            start_time=draft.start_time,
            end_time=draft.end_time,
            room=draft.room,
        )

        timetable_id = self._timetable.create(draft)
        logger.info("Created timetable_id=%s for staff=%s", timetable_id, draft.staff_id)
        return TimetableEntry.from_draft(timetable_id, draft)

    def update(self, *, actor: Principal, timetable_id: int, changes: TimetableChanges) -> TimetableEntry:
        self._access.require(actor, Capability.MANAGE_TIMETABLE)

        existing = self._timetable.get_by_id(int(timetable_id))
        if not existing:
            raise NotFoundError("Timetable entry not found")

        merged = changes.apply_to(existing)
        self._check_slot(
            staff_id=merged.staff_id,
            day_of_week=merged.day_of_week,
            start_time=merged.start_time,
            end_time=merged.end_time,
            room=merged.room,
            exclude_id=existing.timetable_id,
        )

        self._timetable.update(merged)
        logger.info("Updated timetable_id=%s", merged.timetable_id)
        return merged

    def delete(self, *, actor: Principal, timetable_id: int) -> None:
        self._access.require(actor, Capability.MANAGE_TIMETABLE)

        if not self._timetable.get_by_id(int(timetable_id)):
            raise NotFoundError("Timetable entry not found")

        if not self._timetable.delete_cascade(int(timetable_id)):
            raise NotFoundError("Timetable entry not found")
        logger.info("Deleted timetable_id=%s with its attendance sessions", timetable_id)

    def list_for_staff(self, *, actor: Principal, staff_id: int) -> Sequence[TimetableListRow]:
        self._access.require(actor, Capability.VIEW_TIMETABLE)
        return self._timetable.list_for_staff(int(staff_id))

    def list_for_department(self, *, actor: Principal, dept_id: int) -> Sequence[TimetableListRow]:
        self._access.require(actor, Capability.VIEW_TIMETABLE)
        return self._timetable.list_for_department(int(dept_id))
