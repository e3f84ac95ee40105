"""
Tests for the HTTP layer.
"""
import pytest
from fastapi.testclient import TestClient

from database import Schedule, SystemLog
from main import app


@pytest.fixture
def client(seeded):
    with TestClient(app) as client:
        yield client


def as_user(user_id):
    return {"X-User-Id": str(user_id)}


class TestHealth:
    """Tests for the health endpoints."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "online"


class TestAuthentication:
    """Principal resolution from the request header."""

    def test_missing_header(self, client):
        assert client.get("/roles/me").status_code == 401

    def test_garbage_header(self, client):
        assert client.get("/roles/me", headers={"X-User-Id": "admin"}).status_code == 401

    def test_unknown_user(self, client):
        response = client.get("/roles/me", headers=as_user(9999))
        assert response.status_code == 401
        assert response.json()["detail"] == "No role available"


class TestRoles:
    """Tests for the role endpoints."""

    def test_me(self, client, seeded):
        response = client.get("/roles/me", headers=as_user(seeded["teacher_maria"]))

        assert response.status_code == 200
        body = response.json()
        assert body["active_role"] == "teacher"
        assert body["available_roles"] == ["class_teacher", "teacher"]
        assert [o["grant_id"] is None for o in body["options"]] == [True, False]
        assert body["options"][0]["is_active"]

    def test_switch_and_back(self, client, seeded, db_session):
        """Test that a switch persists, changes scope and is audited."""
        maria = as_user(seeded["teacher_maria"])

        response = client.post("/roles/switch", json={"role": "class_teacher"}, headers=maria)
        assert response.status_code == 200
        assert response.json()["active_class_id"] == seeded["class_10a"]

        assert client.get("/roles/me", headers=maria).json()["active_role"] == "class_teacher"
        users = client.get("/users", headers=maria).json()
        assert {u["id"] for u in users["items"]} == {seeded["student_miguel"], seeded["student_ana"]}

        back = client.post("/roles/switch", json={"grant_id": None}, headers=maria)
        assert back.json()["active_role"] == "teacher"

        actions = [log.action for log in db_session.query(SystemLog).order_by(SystemLog.id)]
        assert actions == ["role_switched", "role_switched"]

    def test_switch_to_role_not_held(self, client, seeded):
        response = client.post(
            "/roles/switch",
            json={"role": "school_admin", "school_id": seeded["school_south"]},
            headers=as_user(seeded["teacher_maria"]),
        )
        assert response.status_code == 400
        assert response.json()["field"] == "role"
        assert client.get("/roles/me", headers=as_user(seeded["teacher_maria"])).json()["active_role"] == "teacher"

    def test_active_role_of_self(self, client, seeded):
        maria = seeded["teacher_maria"]
        response = client.put(f"/users/{maria}/active-role", json={"role": "class_teacher"}, headers=as_user(maria))
        assert response.status_code == 200
        assert response.json()["active_role"] == "class_teacher"

    def test_active_role_of_someone_else(self, client, seeded):
        response = client.put(
            f"/users/{seeded['student_ana']}/active-role",
            json={"role": "student"},
            headers=as_user(seeded["super_admin"]),
        )
        assert response.status_code == 403


class TestGrantAdministration:
    """Tests for adding and removing grants over HTTP."""

    def test_school_admin_manages_own_school(self, client, seeded):
        admin = as_user(seeded["north_admin"])
        payload = {
            "user_id": seeded["student_pedro"],
            "role": "class_teacher",
            "school_id": seeded["school_north"],
            "class_id": seeded["class_10b"],
        }

        created = client.post("/roles", json=payload, headers=admin)
        again = client.post("/roles", json=payload, headers=admin)
        assert created.status_code == 201
        assert again.json()["id"] == created.json()["id"]

        listed = client.get(f"/roles/users/{seeded['student_pedro']}", headers=admin)
        assert [g["role"] for g in listed.json()] == ["class_teacher"]

        removed = client.delete(f"/roles/{created.json()['id']}", headers=admin)
        assert removed.status_code == 200
        assert client.get(f"/roles/users/{seeded['student_pedro']}", headers=admin).json() == []

    def test_school_admin_cannot_reach_other_school(self, client, seeded):
        admin = as_user(seeded["north_admin"])

        response = client.post(
            "/roles",
            json={"user_id": seeded["student_beatriz"], "role": "parent"},
            headers=admin,
        )
        assert response.status_code == 404
        assert client.get(f"/roles/users/{seeded['student_beatriz']}", headers=admin).status_code == 404

    def test_malformed_grant(self, client, seeded):
        response = client.post(
            "/roles",
            json={"user_id": seeded["student_pedro"], "role": "class_teacher", "school_id": seeded["school_north"]},
            headers=as_user(seeded["super_admin"]),
        )
        assert response.status_code == 400
        assert response.json()["field"] == "class_id"

    def test_unknown_user(self, client, seeded):
        response = client.post(
            "/roles",
            json={"user_id": 9999, "role": "teacher"},
            headers=as_user(seeded["super_admin"]),
        )
        assert response.status_code == 404

    def test_teacher_cannot_grant(self, client, seeded):
        response = client.post(
            "/roles",
            json={"user_id": seeded["student_pedro"], "role": "parent"},
            headers=as_user(seeded["teacher_maria"]),
        )
        assert response.status_code == 403


class TestResources:
    """Tests for the scoped read endpoints."""

    def test_student_sees_own_class_schedule(self, client, seeded):
        response = client.get("/schedules", headers=as_user(seeded["student_miguel"]))

        assert response.status_code == 200
        assert {s["class_id"] for s in response.json()["items"]} == {seeded["class_10a"]}

    def test_filter_outside_scope_is_empty(self, client, seeded):
        response = client.get(
            "/schedules",
            params={"class_id": seeded["class_11a"]},
            headers=as_user(seeded["student_miguel"]),
        )
        assert response.status_code == 200
        assert response.json()["count"] == 0

    def test_out_of_scope_looks_missing(self, client, seeded, db_session):
        """Test that another class's schedule and a nonexistent one give the same 404."""
        other = db_session.query(Schedule).filter(Schedule.class_id == seeded["class_11a"]).first()
        miguel = as_user(seeded["student_miguel"])

        hidden = client.get(f"/schedules/{other.id}", headers=miguel)
        missing = client.get("/schedules/99999", headers=miguel)

        assert hidden.status_code == missing.status_code == 404
        assert hidden.json() == missing.json()

    def test_student_grades_are_own(self, client, seeded):
        response = client.get("/grades", headers=as_user(seeded["student_miguel"]))
        assert {g["student_id"] for g in response.json()["items"]} == {seeded["student_miguel"]}

    def test_parent_sees_children_grades(self, client, seeded):
        response = client.get("/grades", headers=as_user(seeded["parent_carla"]))
        assert {g["student_id"] for g in response.json()["items"]} == {
            seeded["student_miguel"], seeded["student_pedro"],
        }

    def test_teacher_cannot_read_documents(self, client, seeded):
        response = client.get("/documents", headers=as_user(seeded["teacher_maria"]))
        assert response.status_code == 403

    def test_schools_by_role(self, client, seeded):
        assert client.get("/schools", headers=as_user(seeded["super_admin"])).json()["count"] == 2
        north = client.get("/schools", headers=as_user(seeded["north_admin"])).json()
        assert [s["id"] for s in north["items"]] == [seeded["school_north"]]

    def test_principal_switching_to_teacher_loses_school_view(self, client, seeded):
        """Test that a principal acting as a teacher only sees classes they teach."""
        helena = as_user(seeded["south_principal"])

        as_principal = client.get("/classes", headers=helena).json()
        assert [c["id"] for c in as_principal["items"]] == [seeded["class_11a"]]

        client.post("/roles/switch", json={"role": "teacher"}, headers=helena)
        assert client.get("/classes", headers=helena).json()["count"] == 0

    def test_school_filter_on_schedules(self, client, seeded):
        """Test that a school filter on a resource without a school column still narrows."""
        response = client.get(
            "/schedules",
            params={"school_id": seeded["school_south"]},
            headers=as_user(seeded["super_admin"]),
        )

        assert response.status_code == 200
        assert {s["class_id"] for s in response.json()["items"]} == {seeded["class_11a"]}

    def test_unsupported_filter_is_rejected(self, client, seeded):
        response = client.get(
            "/schools",
            params={"student_id": seeded["student_miguel"]},
            headers=as_user(seeded["super_admin"]),
        )

        assert response.status_code == 400
        assert response.json()["field"] == "student_id"

    def test_unknown_resource(self, client, seeded):
        assert client.get("/janitors", headers=as_user(seeded["super_admin"])).status_code == 422


class TestOpenApi:
    """The documented error bodies match what the handlers send."""

    def test_error_schema_is_documented(self, client):
        schema = client.get("/openapi.json").json()

        assert "ErrorResponse" in schema["components"]["schemas"]
        switch = schema["paths"]["/roles/switch"]["post"]["responses"]
        assert switch["400"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")

    def test_error_body_shape(self, client, seeded):
        response = client.get("/schedules/99999", headers=as_user(seeded["student_miguel"]))
        assert response.json() == {"detail": "schedules not found"}
