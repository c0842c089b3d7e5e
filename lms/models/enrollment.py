from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class Enrollment:
    """Links one student to one course.

    progress / completed_lessons / total_lessons mirror the matching
    ProgressRecord.  They are only ever written by the engine's single
    progress write path, never edited on their own.
    """

    id: str
    student_id: str
    student_name: str
    student_email: str
    course_id: str
    enrolled_at: datetime
    progress: int = 0
    completed_lessons: int = 0
    total_lessons: int = 0

    @staticmethod
    def new(
        *,
        student_id: str,
        student_name: str,
        student_email: str,
        course_id: str,
        enrolled_at: datetime,
        total_lessons: int = 0,
    ) -> Enrollment:
        return Enrollment(
            id=str(uuid4()),
            student_id=student_id,
            student_name=student_name,
            student_email=student_email,
            course_id=course_id,
            enrolled_at=enrolled_at,
            total_lessons=total_lessons,
        )
