"""Course catalog and enrollment endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient

from lms.store.entity_store import EntityStore
from tests.conftest import STUDENT_1, STUDENT_2, TEACHER_1, TEACHER_2, headers_for


def _create_course(client: TestClient, **body: object) -> dict:
    payload = {"title": "Intro to Python", **body}
    resp = client.post("/v1/courses", json=payload, headers=headers_for(TEACHER_1))
    assert resp.status_code == 201
    return resp.json()


# ---- 401 / 403 ----


def test_missing_identity_is_rejected(client: TestClient) -> None:
    resp = client.get("/v1/courses")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Missing identity"


def test_student_cannot_create_course(client: TestClient) -> None:
    resp = client.post(
        "/v1/courses", json={"title": "x"}, headers=headers_for(STUDENT_1)
    )
    assert resp.status_code == 403


def test_role_header_is_case_insensitive(client: TestClient) -> None:
    headers = {**headers_for(TEACHER_1), "X-User-Role": "Teacher"}
    resp = client.post("/v1/courses", json={"title": "x"}, headers=headers)
    assert resp.status_code == 201


# ---- create / list ----


def test_create_course_returns_course(client: TestClient) -> None:
    body = _create_course(client, description="Basics", total_lessons=12)
    assert body["title"] == "Intro to Python"
    assert body["teacher_id"] == "t1"
    assert body["teacher_name"] == TEACHER_1.name
    assert body["total_lessons"] == 12
    assert body["published"] is True
    assert body["enrolled_students"] == []


def test_create_course_validates_body(client: TestClient) -> None:
    resp = client.post(
        "/v1/courses",
        json={"title": "", "total_lessons": -1},
        headers=headers_for(TEACHER_1),
    )
    assert resp.status_code == 422


def test_course_lists_are_role_scoped(client: TestClient) -> None:
    published = _create_course(client, title="Published")
    draft = _create_course(client, title="Draft", published=False)

    teacher_ids = [
        c["id"] for c in client.get("/v1/courses", headers=headers_for(TEACHER_1)).json()
    ]
    assert teacher_ids == [published["id"], draft["id"]]

    other_teacher = client.get("/v1/courses", headers=headers_for(TEACHER_2)).json()
    assert other_teacher == []

    student_ids = [
        c["id"] for c in client.get("/v1/courses", headers=headers_for(STUDENT_1)).json()
    ]
    assert student_ids == [published["id"]]


def test_student_cannot_fetch_draft(client: TestClient) -> None:
    draft = _create_course(client, published=False)
    resp = client.get(f"/v1/courses/{draft['id']}", headers=headers_for(STUDENT_1))
    assert resp.status_code == 404
    resp = client.get(f"/v1/courses/{draft['id']}", headers=headers_for(TEACHER_1))
    assert resp.status_code == 200


# ---- update / delete ----


def test_owner_updates_course(client: TestClient) -> None:
    course = _create_course(client)
    resp = client.patch(
        f"/v1/courses/{course['id']}",
        json={"title": "Renamed", "published": False},
        headers=headers_for(TEACHER_1),
    )
    assert resp.status_code == 200
    assert resp.json()["title"] == "Renamed"
    assert resp.json()["published"] is False
    assert resp.json()["description"] == course["description"]


def test_other_teacher_cannot_update_or_delete(client: TestClient) -> None:
    course = _create_course(client)
    url = f"/v1/courses/{course['id']}"
    assert client.patch(url, json={"title": "x"}, headers=headers_for(TEACHER_2)).status_code == 403
    assert client.delete(url, headers=headers_for(TEACHER_2)).status_code == 403


def test_delete_course(client: TestClient, store: EntityStore) -> None:
    course = _create_course(client)
    resp = client.delete(f"/v1/courses/{course['id']}", headers=headers_for(TEACHER_1))
    assert resp.status_code == 204
    assert course["id"] not in store.courses

    resp = client.delete(f"/v1/courses/{course['id']}", headers=headers_for(TEACHER_1))
    assert resp.status_code == 404


# ---- enrollment ----


def test_enroll_and_check_status(client: TestClient) -> None:
    course = _create_course(client)
    url = f"/v1/courses/{course['id']}"

    status_before = client.get(f"{url}/enrollment", headers=headers_for(STUDENT_1))
    assert status_before.json() == {"course_id": course["id"], "enrolled": False}

    resp = client.post(f"{url}/enroll", headers=headers_for(STUDENT_1))
    assert resp.status_code == 201
    body = resp.json()
    assert body["student_id"] == "s1"
    assert body["student_email"] == STUDENT_1.email
    assert body["progress"] == 0
    assert body["total_lessons"] == 10

    status_after = client.get(f"{url}/enrollment", headers=headers_for(STUDENT_1))
    assert status_after.json()["enrolled"] is True

    detail = client.get(url, headers=headers_for(STUDENT_1)).json()
    assert [s["student_id"] for s in detail["enrolled_students"]] == ["s1"]


def test_enroll_twice_returns_409(client: TestClient) -> None:
    course = _create_course(client)
    url = f"/v1/courses/{course['id']}/enroll"
    assert client.post(url, headers=headers_for(STUDENT_1)).status_code == 201
    resp = client.post(url, headers=headers_for(STUDENT_1))
    assert resp.status_code == 409
    assert resp.json()["detail"] == "already enrolled"


def test_enroll_unknown_course_returns_404(client: TestClient) -> None:
    resp = client.post("/v1/courses/missing/enroll", headers=headers_for(STUDENT_1))
    assert resp.status_code == 404


def test_teacher_cannot_enroll(client: TestClient) -> None:
    course = _create_course(client)
    resp = client.post(
        f"/v1/courses/{course['id']}/enroll", headers=headers_for(TEACHER_1)
    )
    assert resp.status_code == 403


def test_unenroll_is_idempotent(client: TestClient) -> None:
    course = _create_course(client)
    url = f"/v1/courses/{course['id']}"
    client.post(f"{url}/enroll", headers=headers_for(STUDENT_1))

    assert client.delete(f"{url}/enroll", headers=headers_for(STUDENT_1)).status_code == 204
    assert client.delete(f"{url}/enroll", headers=headers_for(STUDENT_1)).status_code == 204

    status = client.get(f"{url}/enrollment", headers=headers_for(STUDENT_1)).json()
    assert status["enrolled"] is False
    detail = client.get(url, headers=headers_for(STUDENT_1)).json()
    assert detail["enrolled_students"] == []


def test_enrolled_courses_include_progress(client: TestClient) -> None:
    course = _create_course(client)
    client.post(f"/v1/courses/{course['id']}/enroll", headers=headers_for(STUDENT_1))

    resp = client.get("/v1/courses/enrolled", headers=headers_for(STUDENT_1))
    assert resp.status_code == 200
    items = resp.json()
    assert len(items) == 1
    assert items[0]["course"]["id"] == course["id"]
    assert items[0]["progress"]["percent"] == 0
    assert items[0]["progress"]["total_lessons"] == 10

    assert client.get("/v1/courses/enrolled", headers=headers_for(STUDENT_2)).json() == []


def test_roster_for_owner_only(client: TestClient) -> None:
    course = _create_course(client)
    url = f"/v1/courses/{course['id']}"
    client.post(f"{url}/enroll", headers=headers_for(STUDENT_1))
    client.post(f"{url}/enroll", headers=headers_for(STUDENT_2))

    resp = client.get(f"{url}/roster", headers=headers_for(TEACHER_1))
    assert resp.status_code == 200
    assert [e["student_id"] for e in resp.json()] == ["s1", "s2"]

    assert client.get(f"{url}/roster", headers=headers_for(TEACHER_2)).status_code == 403
    assert client.get(f"{url}/roster", headers=headers_for(STUDENT_1)).status_code == 403
