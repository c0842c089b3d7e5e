"""Course, assignment, submission and grading writes.

Teachers own the courses and assignments they create; edits and
deletes check ownership.  Deleting a course also deletes its
assignments.  Enrollments and progress records pointing at a deleted
course are left in place; the query layer filters them out.

Every write runs its lookups and its commit inside one
EntityStore.transaction().
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Final

from lms.models.actor import STUDENT, TEACHER, Actor
from lms.models.assignment import Assignment, Submission
from lms.models.course import DEFAULT_TOTAL_LESSONS, Course
from lms.services.errors import (
    AssignmentNotFoundError,
    CourseNotFoundError,
    InvalidGradeError,
    NotEnrolledError,
    SubmissionNotFoundError,
)
from lms.services.guards import Clock, rejected, require_owner, require_role, succeeded, utcnow
from lms.services.queries import is_enrolled
from lms.store.codec import CollectionKind
from lms.store.entity_store import EntityStore

logger = logging.getLogger(__name__)


class _Keep:
    def __repr__(self) -> str:
        return "KEEP"


# Default for update fields where None is itself a value ("no due date").
KEEP: Final = _Keep()


class CourseService:
    def __init__(self, store: EntityStore, *, clock: Clock = utcnow) -> None:
        self._store = store
        self._clock = clock

    def _owned_course(self, actor: Actor, course_id: str, operation: str) -> Course:
        require_role(actor, TEACHER, operation)
        course = self._store.courses.get(course_id)
        if course is None:
            raise rejected(operation, CourseNotFoundError(course_id))
        require_owner(actor, course.teacher_id, f"course {course_id}", operation)
        return course

    def _owned_assignment(
        self, actor: Actor, assignment_id: str, operation: str
    ) -> Assignment:
        require_role(actor, TEACHER, operation)
        assignment = self._store.assignments.get(assignment_id)
        if assignment is None:
            raise rejected(operation, AssignmentNotFoundError(assignment_id))
        require_owner(actor, assignment.teacher_id, f"assignment {assignment_id}", operation)
        return assignment

    def _put_assignment(self, assignment: Assignment) -> None:
        self._store.commit(
            {
                CollectionKind.ASSIGNMENTS: {
                    **self._store.assignments,
                    assignment.id: assignment,
                }
            }
        )

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------

    def add_course(
        self,
        actor: Actor,
        *,
        title: str,
        description: str = "",
        published: bool = True,
        total_lessons: int = DEFAULT_TOTAL_LESSONS,
    ) -> Course:
        require_role(actor, TEACHER, "add_course")
        if total_lessons < 0:
            raise ValueError("total_lessons must be >= 0")

        course = Course.new(
            title=title,
            description=description,
            teacher_id=actor.id,
            teacher_name=actor.name,
            created_at=self._clock(),
            published=published,
            total_lessons=total_lessons,
        )
        with self._store.transaction():
            self._store.commit(
                {CollectionKind.COURSES: {**self._store.courses, course.id: course}}
            )
        succeeded("add_course")
        logger.info("Created course id=%s teacher=%s", course.id, actor.id)
        return course

    def update_course(
        self,
        actor: Actor,
        course_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        published: bool | None = None,
        total_lessons: int | None = None,
    ) -> Course:
        """Apply the given fields.  total_lessons only sizes records created later."""
        if total_lessons is not None and total_lessons < 0:
            raise ValueError("total_lessons must be >= 0")

        with self._store.transaction():
            course = self._owned_course(actor, course_id, "update_course")
            updated = replace(
                course,
                title=course.title if title is None else title,
                description=course.description if description is None else description,
                published=course.published if published is None else published,
                total_lessons=(
                    course.total_lessons if total_lessons is None else total_lessons
                ),
            )
            self._store.commit(
                {CollectionKind.COURSES: {**self._store.courses, course_id: updated}}
            )
        succeeded("update_course")
        return updated

    def delete_course(self, actor: Actor, course_id: str) -> None:
        with self._store.transaction():
            self._owned_course(actor, course_id, "delete_course")

            courses = {k: c for k, c in self._store.courses.items() if k != course_id}
            assignments = {
                k: a
                for k, a in self._store.assignments.items()
                if a.course_id != course_id
            }
            removed = len(self._store.assignments) - len(assignments)
            self._store.commit(
                {
                    CollectionKind.COURSES: courses,
                    CollectionKind.ASSIGNMENTS: assignments,
                }
            )
        succeeded("delete_course")
        logger.info(
            "Deleted course id=%s with %d assignment(s)",
            course_id,
            removed,
        )

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    def add_assignment(
        self,
        actor: Actor,
        *,
        course_id: str,
        title: str,
        description: str = "",
        due_date: datetime | None = None,
        max_points: int = 100,
        published: bool = True,
    ) -> Assignment:
        if max_points <= 0:
            raise ValueError("max_points must be > 0")

        with self._store.transaction():
            self._owned_course(actor, course_id, "add_assignment")
            assignment = Assignment.new(
                title=title,
                description=description,
                course_id=course_id,
                teacher_id=actor.id,
                teacher_name=actor.name,
                created_at=self._clock(),
                due_date=due_date,
                max_points=max_points,
                published=published,
            )
            self._put_assignment(assignment)
        succeeded("add_assignment")
        logger.info("Created assignment id=%s course=%s", assignment.id, course_id)
        return assignment

    def update_assignment(
        self,
        actor: Actor,
        assignment_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        due_date: datetime | None | _Keep = KEEP,
        max_points: int | None = None,
        published: bool | None = None,
    ) -> Assignment:
        """Apply the given fields.  due_date=None clears the due date."""
        if max_points is not None and max_points <= 0:
            raise ValueError("max_points must be > 0")

        with self._store.transaction():
            assignment = self._owned_assignment(actor, assignment_id, "update_assignment")
            updated = replace(
                assignment,
                title=assignment.title if title is None else title,
                description=(
                    assignment.description if description is None else description
                ),
                due_date=(
                    assignment.due_date if isinstance(due_date, _Keep) else due_date
                ),
                max_points=assignment.max_points if max_points is None else max_points,
                published=assignment.published if published is None else published,
            )
            self._put_assignment(updated)
        succeeded("update_assignment")
        return updated

    def delete_assignment(self, actor: Actor, assignment_id: str) -> None:
        with self._store.transaction():
            self._owned_assignment(actor, assignment_id, "delete_assignment")
            self._store.commit(
                {
                    CollectionKind.ASSIGNMENTS: {
                        k: a
                        for k, a in self._store.assignments.items()
                        if k != assignment_id
                    }
                }
            )
        succeeded("delete_assignment")
        logger.info("Deleted assignment id=%s", assignment_id)

    # ------------------------------------------------------------------
    # Submissions and grading
    # ------------------------------------------------------------------

    def submit_assignment(
        self, actor: Actor, assignment_id: str, content: str
    ) -> Submission:
        """Store the actor's submission, replacing any earlier one."""
        require_role(actor, STUDENT, "submit_assignment")
        if not content.strip():
            raise ValueError("submission content must be non-empty")

        with self._store.transaction():
            assignment = self._store.assignments.get(assignment_id)
            if assignment is None or not assignment.published:
                raise rejected(
                    "submit_assignment", AssignmentNotFoundError(assignment_id)
                )
            if not is_enrolled(actor.id, assignment.course_id, self._store.enrollments):
                raise rejected(
                    "submit_assignment", NotEnrolledError(actor.id, assignment.course_id)
                )

            submission = Submission.new(
                student_id=actor.id,
                student_name=actor.name,
                content=content,
                submitted_at=self._clock(),
            )
            others = tuple(s for s in assignment.submissions if s.student_id != actor.id)
            self._put_assignment(replace(assignment, submissions=others + (submission,)))
        succeeded("submit_assignment")
        logger.info(
            "Submission student=%s assignment=%s", actor.id, assignment_id
        )
        return submission

    def grade_submission(
        self,
        actor: Actor,
        assignment_id: str,
        submission_id: str,
        grade: float,
        feedback: str = "",
    ) -> Submission:
        with self._store.transaction():
            assignment = self._owned_assignment(actor, assignment_id, "grade_submission")
            if not 0 <= grade <= assignment.max_points:
                raise rejected(
                    "grade_submission",
                    InvalidGradeError(
                        f"grade must be between 0 and {assignment.max_points} (got {grade})"
                    ),
                )

            for submission in assignment.submissions:
                if submission.id == submission_id:
                    break
            else:
                raise rejected("grade_submission", SubmissionNotFoundError(submission_id))

            graded = replace(submission, grade=grade, feedback=feedback)
            self._put_assignment(
                replace(
                    assignment,
                    submissions=tuple(
                        graded if s.id == submission_id else s
                        for s in assignment.submissions
                    ),
                )
            )
        succeeded("grade_submission")
        logger.info(
            "Graded submission=%s assignment=%s grade=%s",
            submission_id,
            assignment_id,
            grade,
        )
        return graded
