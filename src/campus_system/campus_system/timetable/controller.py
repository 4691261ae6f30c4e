from __future__ import annotations

from flask import Flask

from ..access.policy import Principal
from ..common.datetime_utils import format_time, parse_time_of_day
from ..common.http import api_view, json_body, ok
from ..common.validators import optional_int, optional_text, require_enum, require_positive_id
from ..container import Container
from ..core.enums import DayOfWeek
from .model import CLEARABLE_FIELDS, TimetableChanges, TimetableDraft, TimetableEntry, TimetableListRow


def entry_to_json(entry: TimetableEntry) -> dict:
    return {
        "id": entry.timetable_id,
        "staffId": entry.staff_id,
        "subjectId": entry.subject_id,
        "departmentId": entry.dept_id,
        "dayOfWeek": entry.day_of_week.value,
        "startTime": format_time(entry.start_time),
        "endTime": format_time(entry.end_time),
        "room": entry.room,
        "semester": entry.semester,
        "section": entry.section,
    }


def _list_row_to_json(row: TimetableListRow) -> dict:
    out = entry_to_json(row.entry)
    out.update(
        {
            "subjectName": row.subject_name,
            "departmentName": row.dept_name,
            "staffName": row.staff_name,
        }
    )
    return out


def parse_draft(data: dict) -> TimetableDraft:
    return TimetableDraft(
        staff_id=require_positive_id(data.get("staffId"), "staffId"),
        subject_id=require_positive_id(data.get("subjectId"), "subjectId"),
        dept_id=require_positive_id(data.get("departmentId"), "departmentId"),
        day_of_week=require_enum(data.get("dayOfWeek"), DayOfWeek, "dayOfWeek"),
        start_time=parse_time_of_day(data.get("startTime"), "startTime"),
        end_time=parse_time_of_day(data.get("endTime"), "endTime"),
        room=optional_text(data.get("room")),
        semester=optional_int(data.get("semester"), "semester"),
        section=optional_text(data.get("section")),
    )


def parse_changes(data: dict) -> TimetableChanges:
    def present(key: str) -> bool:
        return data.get(key) not in (None, "")

    return TimetableChanges(
        staff_id=require_positive_id(data["staffId"], "staffId") if present("staffId") else None,
        subject_id=require_positive_id(data["subjectId"], "subjectId") if present("subjectId") else None,
        dept_id=require_positive_id(data["departmentId"], "departmentId") if present("departmentId") else None,
        day_of_week=require_enum(data["dayOfWeek"], DayOfWeek, "dayOfWeek") if present("dayOfWeek") else None,
        start_time=parse_time_of_day(data["startTime"], "startTime") if present("startTime") else None,
        end_time=parse_time_of_day(data["endTime"], "endTime") if present("endTime") else None,
        room=optional_text(data.get("room")),
        semester=optional_int(data.get("semester"), "semester"),
        section=optional_text(data.get("section")),
        # Sent as null or blank: clear the column. Absent: keep it.
        cleared=frozenset(
            key
            for key in CLEARABLE_FIELDS
            if key in data and (data[key] is None or str(data[key]).strip() == "")
        ),
    )


def register(app: Flask, container: Container) -> None:
    @app.route("/timetable", methods=["POST"], endpoint="timetable_create")
    @api_view
    def timetable_create(actor: Principal):
        draft = parse_draft(json_body())
        entry = container.timetable_service.create(actor=actor, draft=draft)
        return ok(entry_to_json(entry), status=201)

    @app.route("/timetable/<int:timetable_id>", methods=["PATCH"], endpoint="timetable_update")
    @api_view
    def timetable_update(actor: Principal, timetable_id: int):
        changes = parse_changes(json_body())
        entry = container.timetable_service.update(actor=actor, timetable_id=timetable_id, changes=changes)
        return ok(entry_to_json(entry))

    @app.route("/timetable/<int:timetable_id>", methods=["DELETE"], endpoint="timetable_delete")
    @api_view
    def timetable_delete(actor: Principal, timetable_id: int):
        container.timetable_service.delete(actor=actor, timetable_id=timetable_id)
        return ok({"id": timetable_id}, message="Timetable entry deleted")

    @app.route("/timetable/staff/<int:staff_id>", methods=["GET"], endpoint="timetable_for_staff")
    @api_view
    def timetable_for_staff(actor: Principal, staff_id: int):
        rows = container.timetable_service.list_for_staff(actor=actor, staff_id=staff_id)
        return ok([_list_row_to_json(r) for r in rows])

    @app.route("/timetable/department/<int:dept_id>", methods=["GET"], endpoint="timetable_for_department")
    @api_view
    def timetable_for_department(actor: Principal, dept_id: int):
        rows = container.timetable_service.list_for_department(actor=actor, dept_id=dept_id)
        return ok([_list_row_to_json(r) for r in rows])
