from __future__ import annotations

from flask import Flask

from ..access.policy import Principal
from ..common.datetime_utils import format_time
from ..common.http import api_view, json_body, ok
from ..common.validators import optional_text, require_enum, require_positive_id
from ..container import Container
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from ..timetable.controller import entry_to_json
from .model import AttendanceMark, AttendanceSession, StaffSessionRow, StudentAttendanceReport, SubjectAttendanceRow


def session_to_json(s: AttendanceSession) -> dict:
    return {
        "id": s.session_id,
        "date": s.session_date.strftime("%Y-%m-%d"),
        "timetableId": s.timetable_id,
        "staffId": s.staff_id,
        "subjectId": s.subject_id,
        "departmentId": s.dept_id,
        "semester": s.semester,
        "section": s.section,
        "startTime": format_time(s.start_time),
        "endTime": format_time(s.end_time),
        "status": s.status.value,
        "isLocked": s.is_locked,
    }


def parse_marks(data: list) -> list[AttendanceMark]:
    marks: list[AttendanceMark] = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise ValidationError(f"Record #{i + 1} must be an object")
        marks.append(
            AttendanceMark(
                student_id=require_positive_id(item.get("studentId"), "studentId"),
                status=require_enum(item.get("status"), AttendanceStatus, "status"),
                remarks=optional_text(item.get("remarks")),
            )
        )
    return marks


def _student_report_to_json(report: StudentAttendanceReport) -> dict:
    return {
        "studentId": report.student_id,
        "totalSessions": report.total_sessions,
        "presentSessions": report.present_sessions,
        "percentage": report.percentage,
        "records": [
            {
                "id": r.record_id,
                "sessionId": r.session_id,
                "date": r.session_date.strftime("%Y-%m-%d"),
                "subjectId": r.subject_id,
                "subjectName": r.subject_name,
                "staffName": r.staff_name,
                "status": r.status.value,
                "remarks": r.remarks,
            }
            for r in report.records
        ],
    }


def _subject_row_to_json(row: SubjectAttendanceRow) -> dict:
    return {
        "studentId": row.student_id,
        "name": row.name,
        "regno": row.regno or "N/A",
        "total": row.total,
        "present": row.present,
        "percentage": row.percentage,
    }


def _staff_row_to_json(row: StaffSessionRow) -> dict:
    out = session_to_json(row.session)
    out.update({"subjectName": row.subject_name, "recordCount": row.record_count})
    return out


def register(app: Flask, container: Container) -> None:
    sessions = container.attendance_service
    reports = container.attendance_report_service

    @app.route("/attendance/sessions/today", methods=["GET"], endpoint="attendance_today_sessions")
    @api_view
    def attendance_today_sessions(actor: Principal):
        # Not read-only: missing sessions for today are created here.
        items = sessions.get_today_sessions(actor=actor)
        return ok([dict(session_to_json(i.session), timetable=entry_to_json(i.timetable)) for i in items])

    @app.route("/attendance/sessions/<int:session_id>/students", methods=["GET"], endpoint="attendance_session_students")
    @api_view
    def attendance_session_students(actor: Principal, session_id: int):
        students = sessions.get_students_for_session(actor=actor, session_id=session_id)
        marked = {r.student_id: r for r in sessions.get_session_records(actor=actor, session_id=session_id)}
        return ok(
            [
                {
                    "id": s.user_id,
                    "name": s.full_name,
                    "username": s.username,
                    "departmentId": s.dept_id,
                    "regno": s.regno,
                    "semester": s.semester,
                    "section": s.section,
                    "status": marked[s.user_id].status.value if s.user_id in marked else None,
                    "remarks": marked[s.user_id].remarks if s.user_id in marked else None,
                }
                for s in students
            ]
        )

    @app.route("/attendance/sessions/<int:session_id>/mark", methods=["POST"], endpoint="attendance_mark")
    @api_view
    def attendance_mark(actor: Principal, session_id: int):
        marks = parse_marks(json_body(expect=list))
        sessions.mark_attendance(actor=actor, session_id=session_id, marks=marks)
        return ok(message="Attendance marked successfully")

    @app.route("/attendance/sessions/<int:session_id>/lock", methods=["POST"], endpoint="attendance_lock")
    @api_view
    def attendance_lock(actor: Principal, session_id: int):
        sessions.lock_session(actor=actor, session_id=session_id)
        return ok(message="Session locked")

    @app.route("/attendance/sessions/<int:session_id>/cancel", methods=["POST"], endpoint="attendance_cancel")
    @api_view
    def attendance_cancel(actor: Principal, session_id: int):
        sessions.cancel_session(actor=actor, session_id=session_id)
        return ok(message="Session cancelled")

    @app.route("/attendance/report/student/<int:student_id>", methods=["GET"], endpoint="attendance_report_student")
    @api_view
    def attendance_report_student(actor: Principal, student_id: int):
        report = reports.student_report(actor=actor, student_id=student_id)
        return ok(_student_report_to_json(report))

    @app.route("/attendance/report/subject/<int:subject_id>", methods=["GET"], endpoint="attendance_report_subject")
    @api_view
    def attendance_report_subject(actor: Principal, subject_id: int):
        rows = reports.subject_report(actor=actor, subject_id=subject_id)
        return ok([_subject_row_to_json(r) for r in rows])

    @app.route("/attendance/report/staff/me", methods=["GET"], endpoint="attendance_report_staff_me")
    @api_view
    def attendance_report_staff_me(actor: Principal):
        rows = reports.staff_report(actor=actor, staff_id=actor.user_id)
        return ok([_staff_row_to_json(r) for r in rows])

    @app.route("/attendance/report/staff/<int:staff_id>", methods=["GET"], endpoint="attendance_report_staff")
    @api_view
    def attendance_report_staff(actor: Principal, staff_id: int):
        rows = reports.staff_report(actor=actor, staff_id=staff_id)
        return ok([_staff_row_to_json(r) for r in rows])
