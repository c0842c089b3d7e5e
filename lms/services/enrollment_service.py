"""Enrollment and progress engine.

Per (student, course) pair there are two states, Not Enrolled and
Enrolled.  Each operation runs its checks and its commit inside one
EntityStore.transaction(), so two concurrent enrolls for the same pair
cannot both pass is_enrolled.  The commit persists every collection the
operation touches and swaps them into memory in one step:

  enroll            courses + enrollments + progress
  unenroll          courses + enrollments
  update_progress   enrollments + progress

Enrollment rows carry a copy of the progress counters.  _write_progress
is the only place either copy is produced, which keeps them equal.

Unenrolling keeps the progress record; enrolling again resumes from it.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any

from lms.models.actor import STUDENT, Actor
from lms.models.course import Course, EnrolledStudent
from lms.models.enrollment import Enrollment
from lms.models.progress import (
    CourseProgressSummary,
    OverallProgress,
    ProgressRecord,
    ProgressUpdate,
    round_half_up,
)
from lms.services.errors import AlreadyEnrolledError, CourseNotFoundError, NotEnrolledError
from lms.services.guards import Clock, rejected, require_role, succeeded, utcnow
from lms.services.queries import (
    EnrolledCourse,
    enrolled_courses,
    find_enrollment,
    is_enrolled,
    student_progress,
)
from lms.store.codec import CollectionKind
from lms.store.entity_store import EntityStore

logger = logging.getLogger(__name__)


class EnrollmentService:
    def __init__(self, store: EntityStore, *, clock: Clock = utcnow) -> None:
        self._store = store
        self._clock = clock

    # ------------------------------------------------------------------
    # Single progress write path
    # ------------------------------------------------------------------

    def _write_progress(
        self, enrollment: Enrollment, record: ProgressRecord
    ) -> dict[CollectionKind, dict[Any, Any]]:
        mirrored = replace(
            enrollment,
            progress=record.percent,
            completed_lessons=record.completed_lessons,
            total_lessons=record.total_lessons,
        )
        return {
            CollectionKind.ENROLLMENTS: {
                **self._store.enrollments,
                mirrored.id: mirrored,
            },
            CollectionKind.PROGRESS: {**self._store.progress, record.key: record},
        }

    def _current_record(self, enrollment: Enrollment) -> ProgressRecord:
        record = self._store.progress.get((enrollment.student_id, enrollment.course_id))
        if record is not None:
            return record
        course = self._store.courses.get(enrollment.course_id)
        if course is not None:
            return student_progress(enrollment.student_id, course, self._store.progress)
        return ProgressRecord(
            student_id=enrollment.student_id,
            course_id=enrollment.course_id,
            total_lessons=enrollment.total_lessons,
        )

    # ------------------------------------------------------------------
    # Enrollment
    # ------------------------------------------------------------------

    def enroll(self, actor: Actor, course_id: str) -> Enrollment:
        require_role(actor, STUDENT, "enroll")

        with self._store.transaction():
            course = self._store.courses.get(course_id)
            if course is None:
                raise rejected("enroll", CourseNotFoundError(course_id))
            if is_enrolled(actor.id, course_id, self._store.enrollments):
                raise rejected("enroll", AlreadyEnrolledError(actor.id, course_id))

            now = self._clock()
            enrollment = Enrollment.new(
                student_id=actor.id,
                student_name=actor.name,
                student_email=actor.email,
                course_id=course_id,
                enrolled_at=now,
                total_lessons=course.total_lessons,
            )
            # Resume a record left by an earlier enrollment, if any.
            record = student_progress(actor.id, course, self._store.progress)

            changes = self._write_progress(enrollment, record)
            changes[CollectionKind.COURSES] = {
                **self._store.courses,
                course_id: _with_student(course, actor, now),
            }
            self._store.commit(changes)

        succeeded("enroll")
        logger.info("Enrolled student=%s course=%s", actor.id, course_id)
        return changes[CollectionKind.ENROLLMENTS][enrollment.id]

    def unenroll(self, actor: Actor, course_id: str) -> bool:
        """Remove the actor's enrollment.  Returns False when there was none."""
        require_role(actor, STUDENT, "unenroll")

        with self._store.transaction():
            enrollment = find_enrollment(actor.id, course_id, self._store.enrollments)
            if enrollment is None:
                logger.info(
                    "Unenroll no-op: student=%s not enrolled in course=%s",
                    actor.id,
                    course_id,
                )
                return False

            changes: dict[CollectionKind, dict[Any, Any]] = {
                CollectionKind.ENROLLMENTS: {
                    k: e for k, e in self._store.enrollments.items() if k != enrollment.id
                }
            }
            course = self._store.courses.get(course_id)
            if course is not None:
                changes[CollectionKind.COURSES] = {
                    **self._store.courses,
                    course_id: _without_student(course, actor.id),
                }
            self._store.commit(changes)

        succeeded("unenroll")
        logger.info("Unenrolled student=%s course=%s", actor.id, course_id)
        return True

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def update_progress(
        self, actor: Actor, course_id: str, update: ProgressUpdate
    ) -> ProgressRecord:
        require_role(actor, STUDENT, "update_progress")

        with self._store.transaction():
            enrollment = find_enrollment(actor.id, course_id, self._store.enrollments)
            if enrollment is None:
                raise rejected("update_progress", NotEnrolledError(actor.id, course_id))

            record = update.apply(
                self._current_record(enrollment), accessed_at=self._clock()
            )
            self._store.commit(self._write_progress(enrollment, record))

        succeeded("update_progress")
        logger.info(
            "Progress student=%s course=%s %d/%d (%d%%)",
            actor.id,
            course_id,
            record.completed_lessons,
            record.total_lessons,
            record.percent,
        )
        return record

    def complete_lessons(
        self, actor: Actor, course_id: str, count: int = 1
    ) -> ProgressRecord:
        """Mark `count` more lessons as completed (clamped to the total)."""
        if count < 1:
            raise ValueError("count must be >= 1")
        require_role(actor, STUDENT, "update_progress")

        with self._store.transaction():
            enrollment = find_enrollment(actor.id, course_id, self._store.enrollments)
            if enrollment is None:
                raise rejected("update_progress", NotEnrolledError(actor.id, course_id))

            current = self._current_record(enrollment)
            return self.update_progress(
                actor,
                course_id,
                ProgressUpdate(completed_lessons=current.completed_lessons + count),
            )

    def overall_progress(self, student_id: str) -> OverallProgress:
        snap = self._store.snapshot()
        return summarize_progress(
            enrolled_courses(student_id, snap.enrollments, snap.courses, snap.progress)
        )


def summarize_progress(enrolled: list[EnrolledCourse]) -> OverallProgress:
    if not enrolled:
        return OverallProgress()

    completed_courses = 0
    in_progress_courses = 0
    total_lessons = 0
    completed_lessons = 0
    summaries: list[CourseProgressSummary] = []

    for item in enrolled:
        record = item.progress
        percent = record.percent
        total_lessons += record.total_lessons
        completed_lessons += record.completed_lessons

        if percent >= 100:
            completed_courses += 1
        elif percent > 0:
            in_progress_courses += 1

        summaries.append(
            CourseProgressSummary(
                course_id=item.course.id,
                course_title=item.course.title,
                progress=percent,
                completed_lessons=record.completed_lessons,
                total_lessons=record.total_lessons,
                last_accessed=record.last_accessed or item.enrollment.enrolled_at,
            )
        )

    summaries.sort(key=lambda s: s.last_accessed, reverse=True)  # type: ignore[arg-type,return-value]

    total_courses = len(enrolled)
    return OverallProgress(
        total_courses=total_courses,
        completed_courses=completed_courses,
        in_progress_courses=in_progress_courses,
        not_started_courses=total_courses - completed_courses - in_progress_courses,
        overall_progress=round_half_up(completed_lessons * 100, total_lessons),
        average_progress=round_half_up(sum(s.progress for s in summaries), total_courses),
        total_lessons=total_lessons,
        completed_lessons=completed_lessons,
        courses_progress=tuple(summaries),
    )


def _with_student(course: Course, actor: Actor, enrolled_at: datetime) -> Course:
    others = tuple(s for s in course.enrolled_students if s.student_id != actor.id)
    entry = EnrolledStudent(
        student_id=actor.id, student_name=actor.name, enrolled_at=enrolled_at
    )
    return replace(course, enrolled_students=others + (entry,))


def _without_student(course: Course, student_id: str) -> Course:
    return replace(
        course,
        enrolled_students=tuple(
            s for s in course.enrolled_students if s.student_id != student_id
        ),
    )
