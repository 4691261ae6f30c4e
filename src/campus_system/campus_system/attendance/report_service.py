from __future__ import annotations

from typing import Sequence

from ..access.policy import AccessPolicy, Capability, Principal
from ..core.enums import AttendanceStatus
from ..core.exceptions import AuthorizationError
from .model import (
    StaffSessionRow,
    StudentAttendanceReport,
    SubjectAttendanceRow,
    attendance_percentage,
)
from .repository import AttendanceRepository


class AttendanceReportService:
    """Read-only attendance reports. Only COMPLETED sessions are counted."""

    def __init__(self, attendance: AttendanceRepository, access: AccessPolicy):
        self._attendance = attendance
        self._access = access

    def student_report(self, *, actor: Principal, student_id: int) -> StudentAttendanceReport:
        student_id = int(student_id)
        if actor.user_id != student_id and not self._access.allows(actor, Capability.VIEW_ANY_STUDENT_REPORT):
            raise AuthorizationError("You can only view your own attendance")

        records = list(self._attendance.list_completed_records_for_student(student_id))
        total = len(records)
        present = sum(1 for r in records if r.status == AttendanceStatus.PRESENT)

        return StudentAttendanceReport(
            student_id=student_id,
            total_sessions=total,
            present_sessions=present,
            percentage=attendance_percentage(present, total),
            records=records,
        )

    def subject_report(self, *, actor: Principal, subject_id: int) -> list[SubjectAttendanceRow]:
        self._access.require(actor, Capability.VIEW_SUBJECT_REPORT)

        totals: dict[int, list] = {}
        for rec in self._attendance.list_completed_records_for_subject(int(subject_id)):
            # [name, regno, total, present]
            stats = totals.setdefault(rec.student_id, [rec.student_name, rec.regno, 0, 0])
            stats[2] += 1
            if rec.status == AttendanceStatus.PRESENT:
                stats[3] += 1

        return [
            SubjectAttendanceRow(
                student_id=student_id,
                name=name,
                regno=regno,
                total=total,
                present=present,
                percentage=attendance_percentage(present, total),
            )
            for student_id, (name, regno, total, present) in totals.items()
        ]

    def staff_report(self, *, actor: Principal, staff_id: int) -> Sequence[StaffSessionRow]:
        self._access.require(actor, Capability.VIEW_STAFF_REPORT)
        return self._attendance.list_sessions_for_staff(int(staff_id))
