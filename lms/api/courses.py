"""Course catalog and enrollment endpoints.

  GET    /v1/courses                      role-scoped course list
  POST   /v1/courses                      teacher creates a course
  GET    /v1/courses/enrolled             student's courses + progress
  GET    /v1/courses/{id}                 one course (students: published only)
  PATCH  /v1/courses/{id}                 owning teacher edits
  DELETE /v1/courses/{id}                 owning teacher deletes
  GET    /v1/courses/{id}/roster          owning teacher lists enrollments
  GET    /v1/courses/{id}/enrollment      is the caller enrolled?
  POST   /v1/courses/{id}/enroll          student enrolls  (409 if already)
  DELETE /v1/courses/{id}/enroll          student unenrolls (no-op if not)
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, ConfigDict, Field

from lms.api.dependencies import (
    get_actor,
    get_course_service,
    get_enrollment_service,
    get_store,
    require_role,
)
from lms.models.actor import STUDENT, TEACHER, Actor
from lms.models.course import DEFAULT_TOTAL_LESSONS
from lms.services.course_service import CourseService
from lms.services.enrollment_service import EnrollmentService
from lms.services.errors import (
    AlreadyEnrolledError,
    CourseNotFoundError,
    NotOwnerError,
)
from lms.services.queries import (
    course_roster,
    courses_for_user,
    enrolled_courses,
    is_enrolled,
)
from lms.store.entity_store import EntityStore

router = APIRouter(prefix="/v1/courses", tags=["courses"])


class EnrolledStudentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    student_id: str
    student_name: str
    enrolled_at: datetime


class CourseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    teacher_id: str
    teacher_name: str
    created_at: datetime
    enrolled_students: list[EnrolledStudentOut]
    published: bool
    total_lessons: int


class CourseIn(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    published: bool = True
    total_lessons: int = Field(default=DEFAULT_TOTAL_LESSONS, ge=0)


class CourseUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    published: bool | None = None
    total_lessons: int | None = Field(default=None, ge=0)


class EnrollmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    student_name: str
    student_email: str
    course_id: str
    enrolled_at: datetime
    progress: int
    completed_lessons: int
    total_lessons: int


class ProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    student_id: str
    course_id: str
    completed_lessons: int
    total_lessons: int
    percent: int
    last_accessed: datetime | None


class EnrolledCourseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course: CourseOut
    enrollment: EnrollmentOut
    progress: ProgressOut


class EnrollmentStatusOut(BaseModel):
    course_id: str
    enrolled: bool


def _course_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="course not found")


def _not_owner() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN, detail="course belongs to another teacher"
    )


@router.get("", response_model=list[CourseOut])
def list_courses(
    actor: Annotated[Actor, Depends(get_actor)],
    store: Annotated[EntityStore, Depends(get_store)],
) -> list[CourseOut]:
    return [
        CourseOut.model_validate(c)
        for c in courses_for_user(store.courses, actor.role, actor.id)
    ]


@router.post("", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
def create_course(
    body: CourseIn,
    actor: Annotated[Actor, Depends(require_role(TEACHER))],
    service: Annotated[CourseService, Depends(get_course_service)],
) -> CourseOut:
    course = service.add_course(
        actor,
        title=body.title,
        description=body.description,
        published=body.published,
        total_lessons=body.total_lessons,
    )
    return CourseOut.model_validate(course)


@router.get("/enrolled", response_model=list[EnrolledCourseOut])
def list_enrolled_courses(
    actor: Annotated[Actor, Depends(require_role(STUDENT))],
    store: Annotated[EntityStore, Depends(get_store)],
) -> list[EnrolledCourseOut]:
    snap = store.snapshot()
    return [
        EnrolledCourseOut.model_validate(item)
        for item in enrolled_courses(
            actor.id, snap.enrollments, snap.courses, snap.progress
        )
    ]


@router.get("/{course_id}", response_model=CourseOut)
def get_course(
    course_id: str,
    actor: Annotated[Actor, Depends(get_actor)],
    store: Annotated[EntityStore, Depends(get_store)],
) -> CourseOut:
    visible = {c.id: c for c in courses_for_user(store.courses, actor.role, actor.id)}
    course = visible.get(course_id)
    if course is None:
        raise _course_not_found()
    return CourseOut.model_validate(course)


@router.patch("/{course_id}", response_model=CourseOut)
def update_course(
    course_id: str,
    body: CourseUpdate,
    actor: Annotated[Actor, Depends(require_role(TEACHER))],
    service: Annotated[CourseService, Depends(get_course_service)],
) -> CourseOut:
    try:
        course = service.update_course(
            actor,
            course_id,
            title=body.title,
            description=body.description,
            published=body.published,
            total_lessons=body.total_lessons,
        )
    except CourseNotFoundError:
        raise _course_not_found() from None
    except NotOwnerError:
        raise _not_owner() from None
    return CourseOut.model_validate(course)


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course(
    course_id: str,
    actor: Annotated[Actor, Depends(require_role(TEACHER))],
    service: Annotated[CourseService, Depends(get_course_service)],
) -> Response:
    try:
        service.delete_course(actor, course_id)
    except CourseNotFoundError:
        raise _course_not_found() from None
    except NotOwnerError:
        raise _not_owner() from None
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{course_id}/roster", response_model=list[EnrollmentOut])
def get_roster(
    course_id: str,
    actor: Annotated[Actor, Depends(require_role(TEACHER))],
    store: Annotated[EntityStore, Depends(get_store)],
) -> list[EnrollmentOut]:
    course = store.courses.get(course_id)
    if course is None:
        raise _course_not_found()
    if course.teacher_id != actor.id:
        raise _not_owner()
    return [
        EnrollmentOut.model_validate(e)
        for e in course_roster(course_id, store.enrollments)
    ]


@router.get("/{course_id}/enrollment", response_model=EnrollmentStatusOut)
def get_enrollment_status(
    course_id: str,
    actor: Annotated[Actor, Depends(get_actor)],
    store: Annotated[EntityStore, Depends(get_store)],
) -> EnrollmentStatusOut:
    return EnrollmentStatusOut(
        course_id=course_id,
        enrolled=is_enrolled(actor.id, course_id, store.enrollments),
    )


@router.post(
    "/{course_id}/enroll",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
)
def enroll_in_course(
    course_id: str,
    actor: Annotated[Actor, Depends(require_role(STUDENT))],
    service: Annotated[EnrollmentService, Depends(get_enrollment_service)],
) -> EnrollmentOut:
    try:
        enrollment = service.enroll(actor, course_id)
    except CourseNotFoundError:
        raise _course_not_found() from None
    except AlreadyEnrolledError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="already enrolled"
        ) from None
    return EnrollmentOut.model_validate(enrollment)


@router.delete("/{course_id}/enroll", status_code=status.HTTP_204_NO_CONTENT)
def unenroll_from_course(
    course_id: str,
    actor: Annotated[Actor, Depends(require_role(STUDENT))],
    service: Annotated[EnrollmentService, Depends(get_enrollment_service)],
) -> Response:
    service.unenroll(actor, course_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
