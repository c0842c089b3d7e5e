"""Demo: teacher publishes a course, a student works through it.

Uses FastAPI TestClient against an in-memory store, so no Redis or
running server is needed.

Run with:
    python scripts/demo_learning_flow.py
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from lms.main import create_app
from lms.repos.kv_repo import InMemoryKeyValueRepo
from lms.store.entity_store import EntityStore

TEACHER = {"X-User-Id": "t-demo", "X-User-Role": "teacher", "X-User-Name": "Dana Demo"}
STUDENT = {
    "X-User-Id": "s-demo",
    "X-User-Role": "student",
    "X-User-Name": "Sol Student",
    "X-User-Email": "sol@example.com",
}


def main() -> None:
    repo = InMemoryKeyValueRepo()
    client = TestClient(create_app(EntityStore(repo)))

    # ── Step 1: teacher creates a course ────────────────────────────
    r = client.post(
        "/v1/courses",
        json={"title": "Python Basics", "total_lessons": 8},
        headers=TEACHER,
    )
    course = r.json()
    course_id = course["id"]
    print(f"1. POST /v1/courses                 → {r.status_code}  id={course_id}")

    # ── Step 2: student enrolls (and again, to see the 409) ─────────
    r = client.post(f"/v1/courses/{course_id}/enroll", headers=STUDENT)
    print(f"2. POST /enroll                     → {r.status_code}  progress={r.json()['progress']}%")
    r = client.post(f"/v1/courses/{course_id}/enroll", headers=STUDENT)
    print(f"3. POST /enroll (again)             → {r.status_code}  ({r.json()['detail']})")

    # ── Step 3: lessons ─────────────────────────────────────────────
    r = client.post(
        f"/v1/progress/{course_id}/lessons", json={"count": 3}, headers=STUDENT
    )
    body = r.json()
    print(
        f"4. POST /lessons count=3            → {r.status_code}  "
        f"{body['completed_lessons']}/{body['total_lessons']} ({body['percent']}%)"
    )
    r = client.put(
        f"/v1/progress/{course_id}", json={"completed_lessons": 99}, headers=STUDENT
    )
    body = r.json()
    print(
        f"5. PUT  /progress completed=99      → {r.status_code}  "
        f"{body['completed_lessons']}/{body['total_lessons']} (clamped)"
    )

    # ── Step 4: aggregates and achievements ─────────────────────────
    r = client.get("/v1/progress/overall", headers=STUDENT)
    overall = r.json()
    print(
        f"6. GET  /v1/progress/overall        → {r.status_code}  "
        f"completed={overall['completed_courses']} overall={overall['overall_progress']}%"
    )
    r = client.get("/v1/progress/stats", headers=STUDENT)
    stats = r.json()
    badges = ", ".join(a["title"] for a in stats["achievements"]) or "none"
    print(
        f"7. GET  /v1/progress/stats          → {r.status_code}  "
        f"streak={stats['current_streak']} badges: {badges}"
    )

    # ── Step 5: what actually got persisted ─────────────────────────
    print()
    print("Persisted slots:")
    for slot in ("courses", "assignments", "enrollments", "progress"):
        raw = repo.get(slot)
        print(f"  {slot:<12} {len(raw) if raw else 0:>5} bytes")


if __name__ == "__main__":
    main()
