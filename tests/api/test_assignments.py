"""Assignment, submission and grading endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tests.conftest import STUDENT_1, STUDENT_2, TEACHER_1, TEACHER_2, headers_for


@pytest.fixture
def course_id(client: TestClient) -> str:
    resp = client.post(
        "/v1/courses", json={"title": "Intro"}, headers=headers_for(TEACHER_1)
    )
    cid = resp.json()["id"]
    client.post(f"/v1/courses/{cid}/enroll", headers=headers_for(STUDENT_1))
    client.post(f"/v1/courses/{cid}/enroll", headers=headers_for(STUDENT_2))
    return cid


@pytest.fixture
def assignment(client: TestClient, course_id: str) -> dict:
    resp = client.post(
        "/v1/assignments",
        json={"course_id": course_id, "title": "Essay", "max_points": 50},
        headers=headers_for(TEACHER_1),
    )
    assert resp.status_code == 201
    return resp.json()


def _submit(client: TestClient, assignment_id: str, actor, content: str = "answer"):
    return client.post(
        f"/v1/assignments/{assignment_id}/submissions",
        json={"content": content},
        headers=headers_for(actor),
    )


def test_create_assignment(assignment: dict, course_id: str) -> None:
    assert assignment["course_id"] == course_id
    assert assignment["teacher_id"] == "t1"
    assert assignment["max_points"] == 50
    assert assignment["submissions"] == []
    assert assignment["due_date"] is None


def test_create_assignment_for_foreign_or_missing_course(
    client: TestClient, course_id: str
) -> None:
    foreign = client.post(
        "/v1/assignments",
        json={"course_id": course_id, "title": "x"},
        headers=headers_for(TEACHER_2),
    )
    assert foreign.status_code == 403
    missing = client.post(
        "/v1/assignments",
        json={"course_id": "missing", "title": "x"},
        headers=headers_for(TEACHER_1),
    )
    assert missing.status_code == 404


def test_create_assignment_rejects_zero_points(
    client: TestClient, course_id: str
) -> None:
    resp = client.post(
        "/v1/assignments",
        json={"course_id": course_id, "title": "x", "max_points": 0},
        headers=headers_for(TEACHER_1),
    )
    assert resp.status_code == 422


def test_assignment_lists_are_role_scoped(
    client: TestClient, assignment: dict, course_id: str
) -> None:
    client.post(
        "/v1/assignments",
        json={"course_id": course_id, "title": "Hidden", "published": False},
        headers=headers_for(TEACHER_1),
    )

    teacher = client.get("/v1/assignments", headers=headers_for(TEACHER_1)).json()
    assert [a["title"] for a in teacher] == ["Essay", "Hidden"]

    student = client.get("/v1/assignments", headers=headers_for(STUDENT_1)).json()
    assert [a["title"] for a in student] == ["Essay"]

    outsider = {"X-User-Id": "s9", "X-User-Role": "student"}
    assert client.get("/v1/assignments", headers=outsider).json() == []


def test_student_sees_only_own_submission(
    client: TestClient, assignment: dict
) -> None:
    _submit(client, assignment["id"], STUDENT_1, "from s1")
    _submit(client, assignment["id"], STUDENT_2, "from s2")

    student = client.get("/v1/assignments", headers=headers_for(STUDENT_1)).json()
    assert [s["content"] for s in student[0]["submissions"]] == ["from s1"]

    teacher = client.get("/v1/assignments", headers=headers_for(TEACHER_1)).json()
    assert len(teacher[0]["submissions"]) == 2


def test_submit_assignment(client: TestClient, assignment: dict) -> None:
    resp = _submit(client, assignment["id"], STUDENT_1)
    assert resp.status_code == 201
    body = resp.json()
    assert body["student_id"] == "s1"
    assert body["grade"] is None
    assert body["feedback"] == ""


def test_submit_errors(client: TestClient, assignment: dict) -> None:
    assert _submit(client, "missing", STUDENT_1).status_code == 404

    outsider = {"X-User-Id": "s9", "X-User-Role": "student"}
    resp = client.post(
        f"/v1/assignments/{assignment['id']}/submissions",
        json={"content": "hi"},
        headers=outsider,
    )
    assert resp.status_code == 409

    assert _submit(client, assignment["id"], STUDENT_1, "").status_code == 422
    assert _submit(client, assignment["id"], STUDENT_1, "   ").status_code == 422
    assert _submit(client, assignment["id"], TEACHER_1).status_code == 403


def test_grade_submission(client: TestClient, assignment: dict) -> None:
    submission = _submit(client, assignment["id"], STUDENT_1).json()
    url = f"/v1/assignments/{assignment['id']}/submissions/{submission['id']}/grade"

    resp = client.put(
        url, json={"grade": 42, "feedback": "Good"}, headers=headers_for(TEACHER_1)
    )
    assert resp.status_code == 200
    assert resp.json()["grade"] == 42
    assert resp.json()["feedback"] == "Good"

    assert client.put(url, json={"grade": 51}, headers=headers_for(TEACHER_1)).status_code == 422
    assert client.put(url, json={"grade": 10}, headers=headers_for(TEACHER_2)).status_code == 403
    assert client.put(url, json={"grade": 10}, headers=headers_for(STUDENT_1)).status_code == 403


def test_grade_unknown_submission(client: TestClient, assignment: dict) -> None:
    resp = client.put(
        f"/v1/assignments/{assignment['id']}/submissions/nope/grade",
        json={"grade": 10},
        headers=headers_for(TEACHER_1),
    )
    assert resp.status_code == 404


def test_update_and_delete_assignment(client: TestClient, assignment: dict) -> None:
    url = f"/v1/assignments/{assignment['id']}"
    resp = client.patch(url, json={"title": "Long essay"}, headers=headers_for(TEACHER_1))
    assert resp.status_code == 200
    assert resp.json()["title"] == "Long essay"
    assert resp.json()["max_points"] == 50

    assert client.delete(url, headers=headers_for(TEACHER_2)).status_code == 403
    assert client.delete(url, headers=headers_for(TEACHER_1)).status_code == 204
    assert client.delete(url, headers=headers_for(TEACHER_1)).status_code == 404


def test_deleting_course_removes_its_assignments(
    client: TestClient, assignment: dict, course_id: str
) -> None:
    client.delete(f"/v1/courses/{course_id}", headers=headers_for(TEACHER_1))
    assert client.get("/v1/assignments", headers=headers_for(TEACHER_1)).json() == []


def test_patch_without_due_date_keeps_it_and_null_clears_it(
    client: TestClient, assignment: dict
) -> None:
    url = f"/v1/assignments/{assignment['id']}"
    teacher = headers_for(TEACHER_1)

    resp = client.patch(url, json={"due_date": "2026-03-21T09:30:00Z"}, headers=teacher)
    assert resp.json()["due_date"] is not None

    resp = client.patch(url, json={"title": "Essay v2"}, headers=teacher)
    assert resp.json()["due_date"] is not None

    resp = client.patch(url, json={"due_date": None}, headers=teacher)
    assert resp.status_code == 200
    assert resp.json()["due_date"] is None
    assert resp.json()["title"] == "Essay v2"
