from __future__ import annotations

from datetime import datetime

import pytest
from werkzeug.security import generate_password_hash

from src.campus_system.campus_system.attendance import service as attendance_service
from src.campus_system.campus_system.core.enums import Role
from src.campus_system.campus_system.core.exceptions import DuplicateError
from src.campus_system.campus_system.main import create_app
from src.campus_system.campus_system.users.model import User


@pytest.fixture
def app(services):
    return create_app(container=services, settings_module="config.testing")


@pytest.fixture
def client(app):
    return app.test_client()


def login_as(client, user_id, role, name="Someone"):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["role"] = role.value
        sess["name"] = name


def timetable_body(**overrides):
    body = {
        "staffId": 10,
        "subjectId": 100,
        "departmentId": 1,
        "dayOfWeek": "monday",
        "startTime": "09:00",
        "endTime": "10:00",
        "room": "R101",
        "semester": 5,
        "section": "A",
    }
    body.update(overrides)
    return body


def test_requires_login(client):
    resp = client.post("/timetable", json=timetable_body())

    assert resp.status_code == 401
    assert resp.get_json() == {"success": False, "message": "Authentication required"}


def test_login_sets_session(client, users_repo):
    users_repo.add(
        User(
            user_id=10,
            full_name="Staff A",
            username="staff.a",
            password_hash=generate_password_hash("secret"),
            role=Role.STAFF,
            dept_id=1,
        )
    )

    bad = client.post("/auth/login", json={"username": "staff.a", "password": "nope"})
    good = client.post("/auth/login", json={"username": "staff.a", "password": "secret"})
    me = client.get("/auth/me")

    assert bad.status_code == 401
    assert good.status_code == 200
    assert good.get_json()["data"] == {"id": 10, "name": "Staff A", "role": "STAFF"}
    assert me.get_json()["data"]["role"] == "STAFF"


def test_create_timetable_and_clash(client):
    login_as(client, 1, Role.ADMIN)

    created = client.post("/timetable", json=timetable_body())
    clash = client.post("/timetable", json=timetable_body(departmentId=2, room=None, startTime="09:30", endTime="10:30"))

    assert created.status_code == 201
    data = created.get_json()["data"]
    assert data["dayOfWeek"] == "MONDAY"
    assert data["startTime"] == "09:00"
    assert data["room"] == "R101"
    assert clash.status_code == 400
    assert "staff member" in clash.get_json()["message"]


def test_create_timetable_rejects_bad_input(client):
    login_as(client, 1, Role.ADMIN)

    bad_day = client.post("/timetable", json=timetable_body(dayOfWeek="SUNDAY"))
    bad_order = client.post("/timetable", json=timetable_body(startTime="11:00", endTime="10:00"))
    not_json = client.post("/timetable", data="nope", content_type="text/plain")

    assert bad_day.status_code == 400
    assert bad_order.get_json()["message"] == "Start time must be before end time"
    assert not_json.status_code == 400


def test_staff_cannot_create_timetable(client):
    login_as(client, 10, Role.STAFF)

    assert client.post("/timetable", json=timetable_body()).status_code == 403


def test_update_and_delete_missing_entry(client):
    login_as(client, 1, Role.ADMIN)

    assert client.patch("/timetable/99", json={"room": "R2"}).status_code == 404
    assert client.delete("/timetable/99").status_code == 404


def test_update_timetable_entry(client):
    login_as(client, 1, Role.ADMIN)
    entry_id = client.post("/timetable", json=timetable_body()).get_json()["data"]["id"]

    resp = client.patch(f"/timetable/{entry_id}", json={"endTime": "10:30", "room": "R2"})

    assert resp.status_code == 200
    assert resp.get_json()["data"]["endTime"] == "10:30"
    assert resp.get_json()["data"]["room"] == "R2"


def test_attendance_flow(client, users_repo, monkeypatch):
    monkeypatch.setattr(attendance_service, "now_local", lambda: datetime(2026, 10, 19, 8, 0))
    for sid in (500, 501):
        users_repo.add(
            User(user_id=sid, full_name=f"S{sid}", username=f"s{sid}", password_hash="x", role=Role.STUDENT, dept_id=1),
            regno=f"R{sid}",
            semester=5,
            section="A",
        )

    login_as(client, 1, Role.ADMIN)
    client.post("/timetable", json=timetable_body())

    login_as(client, 10, Role.STAFF)
    [session] = client.get("/attendance/sessions/today").get_json()["data"]
    assert session["status"] == "PENDING"
    assert session["timetable"]["room"] == "R101"

    sid = session["id"]
    roster = client.get(f"/attendance/sessions/{sid}/students").get_json()["data"]
    assert sorted(s["id"] for s in roster) == [500, 501]

    marked = client.post(
        f"/attendance/sessions/{sid}/mark",
        json=[{"studentId": 500, "status": "PRESENT"}, {"studentId": 501, "status": "absent", "remarks": "sick"}],
    )
    assert marked.status_code == 200

    roster = {s["id"]: s for s in client.get(f"/attendance/sessions/{sid}/students").get_json()["data"]}
    assert roster[501]["status"] == "ABSENT"
    assert roster[501]["remarks"] == "sick"

    assert client.post(f"/attendance/sessions/{sid}/lock").status_code == 200
    locked = client.post(f"/attendance/sessions/{sid}/mark", json=[{"studentId": 500, "status": "ABSENT"}])
    assert locked.status_code == 400

    report = client.get("/attendance/report/subject/100").get_json()["data"]
    assert {r["studentId"]: r["percentage"] for r in report} == {500: 100.0, 501: 0.0}

    staff_rows = client.get("/attendance/report/staff/me").get_json()["data"]
    assert staff_rows[0]["recordCount"] == 2
    assert staff_rows[0]["isLocked"] is True


def test_mark_requires_array_body(client, admin, staff_a, monday, services, draft_factory):
    services.timetable_service.create(actor=admin, draft=draft_factory())
    [item] = services.attendance_service.get_today_sessions(actor=staff_a, today=monday)
    login_as(client, 10, Role.STAFF)

    resp = client.post(f"/attendance/sessions/{item.session.session_id}/mark", json={"studentId": 500})

    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Request body must be an array"


def test_student_sees_only_own_report(client):
    login_as(client, 500, Role.STUDENT)

    assert client.get("/attendance/report/student/500").status_code == 200
    assert client.get("/attendance/report/student/501").status_code == 403


def test_unknown_route_is_json_404(client):
    resp = client.get("/nope")

    assert resp.status_code == 404
    assert resp.get_json()["success"] is False


def test_update_with_nulls_clears_optional_fields(client):
    login_as(client, 1, Role.ADMIN)
    entry_id = client.post("/timetable", json=timetable_body()).get_json()["data"]["id"]

    resp = client.patch(f"/timetable/{entry_id}", json={"room": None, "section": "", "semester": None})

    data = resp.get_json()["data"]
    assert resp.status_code == 200
    assert data["room"] is None
    assert data["section"] is None
    assert data["semester"] is None


def test_update_without_optional_keys_keeps_them(client):
    login_as(client, 1, Role.ADMIN)
    entry_id = client.post("/timetable", json=timetable_body()).get_json()["data"]["id"]

    data = client.patch(f"/timetable/{entry_id}", json={"endTime": "10:15"}).get_json()["data"]

    assert (data["room"], data["section"], data["semester"]) == ("R101", "A", 5)


def test_unresolved_session_race_is_a_server_error(client, attendance_repo, monkeypatch):
    monkeypatch.setattr(attendance_service, "now_local", lambda: datetime(2026, 10, 19, 8, 0))
    login_as(client, 1, Role.ADMIN)
    client.post("/timetable", json=timetable_body())

    def always_duplicate(**_kwargs):
        raise DuplicateError("Session for timetable_id=1 already exists")

    monkeypatch.setattr(attendance_repo, "create_session", always_duplicate)
    login_as(client, 10, Role.STAFF)

    resp = client.get("/attendance/sessions/today")

    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "message": "Internal server error"}
