from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4

DEFAULT_TOTAL_LESSONS = 10


@dataclass(frozen=True, slots=True)
class EnrolledStudent:
    """Entry in a course's enrolled-student cache."""

    student_id: str
    student_name: str
    enrolled_at: datetime


@dataclass(frozen=True, slots=True)
class Course:
    id: str
    title: str
    description: str
    teacher_id: str
    teacher_name: str
    created_at: datetime
    # Cache of the Enrollment set for this course; written only together
    # with the enrollments collection.
    enrolled_students: tuple[EnrolledStudent, ...] = ()
    published: bool = True
    total_lessons: int = DEFAULT_TOTAL_LESSONS

    @staticmethod
    def new(
        *,
        title: str,
        description: str,
        teacher_id: str,
        teacher_name: str,
        created_at: datetime,
        published: bool = True,
        total_lessons: int = DEFAULT_TOTAL_LESSONS,
    ) -> Course:
        return Course(
            id=str(uuid4()),
            title=title,
            description=description,
            teacher_id=teacher_id,
            teacher_name=teacher_name,
            created_at=created_at,
            published=published,
            total_lessons=total_lessons,
        )

    def has_student(self, student_id: str) -> bool:
        return any(s.student_id == student_id for s in self.enrolled_students)
