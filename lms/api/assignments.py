"""Assignment, submission and grading endpoints.

Students only ever see their own submission on an assignment; teachers
see every submission on the assignments they own.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, ConfigDict, Field

from lms.api.dependencies import get_actor, get_course_service, get_store, require_role
from lms.models.actor import STUDENT, TEACHER, Actor
from lms.models.assignment import Assignment
from lms.services.course_service import KEEP, CourseService
from lms.services.errors import (
    AssignmentNotFoundError,
    CourseNotFoundError,
    InvalidGradeError,
    NotEnrolledError,
    NotOwnerError,
    SubmissionNotFoundError,
)
from lms.services.queries import assignments_for_user
from lms.store.entity_store import EntityStore

router = APIRouter(prefix="/v1/assignments", tags=["assignments"])


class SubmissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    student_name: str
    content: str
    submitted_at: datetime
    grade: float | None
    feedback: str


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    course_id: str
    teacher_id: str
    teacher_name: str
    created_at: datetime
    due_date: datetime | None
    max_points: int
    submissions: list[SubmissionOut]
    published: bool


class AssignmentIn(BaseModel):
    course_id: str
    title: str = Field(min_length=1)
    description: str = ""
    due_date: datetime | None = None
    max_points: int = Field(default=100, gt=0)
    published: bool = True


class AssignmentUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    due_date: datetime | None = None
    max_points: int | None = Field(default=None, gt=0)
    published: bool | None = None


class SubmissionIn(BaseModel):
    content: str = Field(min_length=1)


class GradeIn(BaseModel):
    grade: float
    feedback: str = ""


def _assignment_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND, detail="assignment not found"
    )


def _not_owner() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="assignment belongs to another teacher",
    )


def _visible_to(assignment: Assignment, actor: Actor) -> Assignment:
    if not actor.is_student:
        return assignment
    own = tuple(s for s in assignment.submissions if s.student_id == actor.id)
    return replace(assignment, submissions=own)


@router.get("", response_model=list[AssignmentOut])
def list_assignments(
    actor: Annotated[Actor, Depends(get_actor)],
    store: Annotated[EntityStore, Depends(get_store)],
) -> list[AssignmentOut]:
    return [
        AssignmentOut.model_validate(_visible_to(a, actor))
        for a in assignments_for_user(
            store.assignments, actor.role, actor.id, store.enrollments
        )
    ]


@router.post("", response_model=AssignmentOut, status_code=status.HTTP_201_CREATED)
def create_assignment(
    body: AssignmentIn,
    actor: Annotated[Actor, Depends(require_role(TEACHER))],
    service: Annotated[CourseService, Depends(get_course_service)],
) -> AssignmentOut:
    try:
        assignment = service.add_assignment(
            actor,
            course_id=body.course_id,
            title=body.title,
            description=body.description,
            due_date=body.due_date,
            max_points=body.max_points,
            published=body.published,
        )
    except CourseNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="course not found"
        ) from None
    except NotOwnerError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="course belongs to another teacher",
        ) from None
    return AssignmentOut.model_validate(assignment)


@router.patch("/{assignment_id}", response_model=AssignmentOut)
def update_assignment(
    assignment_id: str,
    body: AssignmentUpdate,
    actor: Annotated[Actor, Depends(require_role(TEACHER))],
    service: Annotated[CourseService, Depends(get_course_service)],
) -> AssignmentOut:
    try:
        assignment = service.update_assignment(
            actor,
            assignment_id,
            title=body.title,
            description=body.description,
            due_date=body.due_date if "due_date" in body.model_fields_set else KEEP,
            max_points=body.max_points,
            published=body.published,
        )
    except AssignmentNotFoundError:
        raise _assignment_not_found() from None
    except NotOwnerError:
        raise _not_owner() from None
    return AssignmentOut.model_validate(assignment)


@router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_assignment(
    assignment_id: str,
    actor: Annotated[Actor, Depends(require_role(TEACHER))],
    service: Annotated[CourseService, Depends(get_course_service)],
) -> Response:
    try:
        service.delete_assignment(actor, assignment_id)
    except AssignmentNotFoundError:
        raise _assignment_not_found() from None
    except NotOwnerError:
        raise _not_owner() from None
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{assignment_id}/submissions",
    response_model=SubmissionOut,
    status_code=status.HTTP_201_CREATED,
)
def submit_assignment(
    assignment_id: str,
    body: SubmissionIn,
    actor: Annotated[Actor, Depends(require_role(STUDENT))],
    service: Annotated[CourseService, Depends(get_course_service)],
) -> SubmissionOut:
    try:
        submission = service.submit_assignment(actor, assignment_id, body.content)
    except AssignmentNotFoundError:
        raise _assignment_not_found() from None
    except NotEnrolledError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="not enrolled in this course"
        ) from None
    except ValueError as e:
        raise HTTPException(
            status_code=422, detail=str(e)
        ) from None
    return SubmissionOut.model_validate(submission)


@router.put(
    "/{assignment_id}/submissions/{submission_id}/grade",
    response_model=SubmissionOut,
)
def grade_submission(
    assignment_id: str,
    submission_id: str,
    body: GradeIn,
    actor: Annotated[Actor, Depends(require_role(TEACHER))],
    service: Annotated[CourseService, Depends(get_course_service)],
) -> SubmissionOut:
    try:
        submission = service.grade_submission(
            actor, assignment_id, submission_id, body.grade, body.feedback
        )
    except (AssignmentNotFoundError, SubmissionNotFoundError):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="assignment or submission not found",
        ) from None
    except NotOwnerError:
        raise _not_owner() from None
    except InvalidGradeError as e:
        raise HTTPException(
            status_code=422, detail=str(e)
        ) from None
    return SubmissionOut.model_validate(submission)
