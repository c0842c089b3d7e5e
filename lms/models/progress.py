from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


def round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded to nearest, halves up (12.5 -> 13)."""
    if denominator <= 0:
        return 0
    return (2 * numerator + denominator) // (2 * denominator)


def progress_percent(completed: int, total: int) -> int:
    """Whole-number completion percentage; 0 for a course with no lessons."""
    return round_half_up(completed * 100, total)


def progress_key(student_id: str, course_id: str) -> str:
    """Key of a progress record in the persisted progress mapping."""
    return f"{student_id}:{course_id}"


@dataclass(frozen=True, slots=True)
class ProgressRecord:
    """Authoritative lesson counters for one (student, course) pair."""

    student_id: str
    course_id: str
    completed_lessons: int = 0
    total_lessons: int = 0
    last_accessed: datetime | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.student_id, self.course_id)

    @property
    def percent(self) -> int:
        return progress_percent(self.completed_lessons, self.total_lessons)


@dataclass(frozen=True, slots=True)
class ProgressUpdate:
    """Absolute values to merge into a progress record; None keeps the old value."""

    completed_lessons: int | None = None
    total_lessons: int | None = None

    def apply(self, record: ProgressRecord, *, accessed_at: datetime) -> ProgressRecord:
        total = record.total_lessons if self.total_lessons is None else self.total_lessons
        total = max(total, 0)
        completed = (
            record.completed_lessons
            if self.completed_lessons is None
            else self.completed_lessons
        )
        completed = min(max(completed, 0), total)
        return ProgressRecord(
            student_id=record.student_id,
            course_id=record.course_id,
            completed_lessons=completed,
            total_lessons=total,
            last_accessed=accessed_at,
        )


@dataclass(frozen=True, slots=True)
class CourseProgressSummary:
    course_id: str
    course_title: str
    progress: int
    completed_lessons: int
    total_lessons: int
    last_accessed: datetime | None


@dataclass(frozen=True, slots=True)
class OverallProgress:
    """Aggregate over a student's enrolled courses.

    overall_progress is lesson-weighted (sum completed / sum total).
    average_progress is the plain mean of per-course percentages.
    The two differ whenever courses have different lesson counts.
    """

    total_courses: int = 0
    completed_courses: int = 0
    in_progress_courses: int = 0
    not_started_courses: int = 0
    overall_progress: int = 0
    average_progress: int = 0
    total_lessons: int = 0
    completed_lessons: int = 0
    courses_progress: tuple[CourseProgressSummary, ...] = ()
