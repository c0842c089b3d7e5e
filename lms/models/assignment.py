from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class Submission:
    id: str
    student_id: str
    student_name: str
    content: str
    submitted_at: datetime
    grade: float | None = None
    feedback: str = ""

    @staticmethod
    def new(
        *, student_id: str, student_name: str, content: str, submitted_at: datetime
    ) -> Submission:
        return Submission(
            id=str(uuid4()),
            student_id=student_id,
            student_name=student_name,
            content=content,
            submitted_at=submitted_at,
        )

    @property
    def is_graded(self) -> bool:
        return self.grade is not None


@dataclass(frozen=True, slots=True)
class Assignment:
    id: str
    title: str
    description: str
    course_id: str
    teacher_id: str
    teacher_name: str
    created_at: datetime
    due_date: datetime | None = None
    max_points: int = 100
    submissions: tuple[Submission, ...] = ()
    published: bool = True

    @staticmethod
    def new(
        *,
        title: str,
        description: str,
        course_id: str,
        teacher_id: str,
        teacher_name: str,
        created_at: datetime,
        due_date: datetime | None = None,
        max_points: int = 100,
        published: bool = True,
    ) -> Assignment:
        return Assignment(
            id=str(uuid4()),
            title=title,
            description=description,
            course_id=course_id,
            teacher_id=teacher_id,
            teacher_name=teacher_name,
            created_at=created_at,
            due_date=due_date,
            max_points=max_points,
            published=published,
        )

    def submission_for(self, student_id: str) -> Submission | None:
        for s in self.submissions:
            if s.student_id == student_id:
                return s
        return None
