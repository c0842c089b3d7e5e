"""Role-scoped read projections over a store snapshot.

Every function here is pure: it takes collections and returns new lists
or values, never mutating its inputs.  is_enrolled() is the one
predicate for enrollment status; the engine and the HTTP layer both
call it rather than re-deriving the check.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from lms.models.actor import STUDENT, TEACHER
from lms.models.assignment import Assignment
from lms.models.course import Course
from lms.models.enrollment import Enrollment
from lms.models.progress import ProgressRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EnrolledCourse:
    course: Course
    enrollment: Enrollment
    progress: ProgressRecord


def is_enrolled(
    user_id: str, course_id: str, enrollments: Mapping[str, Enrollment]
) -> bool:
    return find_enrollment(user_id, course_id, enrollments) is not None


def find_enrollment(
    user_id: str, course_id: str, enrollments: Mapping[str, Enrollment]
) -> Enrollment | None:
    for e in enrollments.values():
        if e.student_id == user_id and e.course_id == course_id:
            return e
    return None


def courses_for_user(
    courses: Mapping[str, Course], role: str, user_id: str
) -> list[Course]:
    if role == TEACHER:
        return [c for c in courses.values() if c.teacher_id == user_id]
    if role == STUDENT:
        return [c for c in courses.values() if c.published]
    return list(courses.values())


def enrolled_course_ids(
    user_id: str, enrollments: Mapping[str, Enrollment]
) -> set[str]:
    return {e.course_id for e in enrollments.values() if e.student_id == user_id}


def assignments_for_user(
    assignments: Mapping[str, Assignment],
    role: str,
    user_id: str,
    enrollments: Mapping[str, Enrollment],
) -> list[Assignment]:
    if role == TEACHER:
        return [a for a in assignments.values() if a.teacher_id == user_id]
    if role == STUDENT:
        course_ids = enrolled_course_ids(user_id, enrollments)
        return [
            a for a in assignments.values() if a.published and a.course_id in course_ids
        ]
    return list(assignments.values())


def student_progress(
    user_id: str, course: Course, progress: Mapping[tuple[str, str], ProgressRecord]
) -> ProgressRecord:
    """Stored record for (user, course), or a zeroed one sized to the course."""
    record = progress.get((user_id, course.id))
    if record is not None:
        return record
    return ProgressRecord(
        student_id=user_id,
        course_id=course.id,
        completed_lessons=0,
        total_lessons=course.total_lessons,
    )


def enrolled_courses(
    user_id: str,
    enrollments: Mapping[str, Enrollment],
    courses: Mapping[str, Course],
    progress: Mapping[tuple[str, str], ProgressRecord],
) -> list[EnrolledCourse]:
    out: list[EnrolledCourse] = []
    for enrollment in enrollments.values():
        if enrollment.student_id != user_id:
            continue
        course = courses.get(enrollment.course_id)
        if course is None:
            logger.debug(
                "Skipping enrollment id=%s: course=%s no longer exists",
                enrollment.id,
                enrollment.course_id,
            )
            continue
        out.append(
            EnrolledCourse(
                course=course,
                enrollment=enrollment,
                progress=student_progress(user_id, course, progress),
            )
        )
    return out


def course_roster(
    course_id: str, enrollments: Mapping[str, Enrollment]
) -> list[Enrollment]:
    return [e for e in enrollments.values() if e.course_id == course_id]
