"""Lesson progress, aggregates and learning stats for the calling student.

  GET  /v1/progress/overall             OverallProgress across enrolled courses
  GET  /v1/progress/stats?tz=Area/City  streak + achievements (local dates in tz)
  GET  /v1/progress/{course_id}         one course's record
  PUT  /v1/progress/{course_id}         merge absolute counters
  POST /v1/progress/{course_id}/lessons complete N more lessons
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from lms.api.courses import ProgressOut
from lms.api.dependencies import (
    get_clock,
    get_enrollment_service,
    get_store,
    require_role,
)
from lms.models.actor import STUDENT, Actor
from lms.models.progress import ProgressUpdate
from lms.services.achievements import learning_stats
from lms.services.enrollment_service import EnrollmentService
from lms.services.errors import NotEnrolledError
from lms.services.guards import Clock
from lms.services.queries import find_enrollment, student_progress
from lms.store.entity_store import EntityStore

router = APIRouter(prefix="/v1/progress", tags=["progress"])


class ProgressUpdateIn(BaseModel):
    completed_lessons: int | None = Field(default=None, ge=0)
    total_lessons: int | None = Field(default=None, ge=0)


class LessonsIn(BaseModel):
    count: int = Field(default=1, ge=1)


class CourseProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: str
    course_title: str
    progress: int
    completed_lessons: int
    total_lessons: int
    last_accessed: datetime | None


class OverallProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_courses: int
    completed_courses: int
    in_progress_courses: int
    not_started_courses: int
    overall_progress: int
    average_progress: int
    total_lessons: int
    completed_lessons: int
    courses_progress: list[CourseProgressOut]


class AchievementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: str
    title: str
    icon: str


class LearningStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    current_streak: int
    total_active_days: int
    achievements: list[AchievementOut]
    recent_activity: list[date]
    overall: OverallProgressOut


def _not_enrolled() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT, detail="not enrolled in this course"
    )


@router.get("/overall", response_model=OverallProgressOut)
def get_overall_progress(
    actor: Annotated[Actor, Depends(require_role(STUDENT))],
    service: Annotated[EnrollmentService, Depends(get_enrollment_service)],
) -> OverallProgressOut:
    return OverallProgressOut.model_validate(service.overall_progress(actor.id))


@router.get("/stats", response_model=LearningStatsOut)
def get_learning_stats(
    actor: Annotated[Actor, Depends(require_role(STUDENT))],
    store: Annotated[EntityStore, Depends(get_store)],
    service: Annotated[EnrollmentService, Depends(get_enrollment_service)],
    clock: Annotated[Clock, Depends(get_clock)],
    tz: str = "UTC",
) -> LearningStatsOut:
    try:
        zone = ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(status_code=422, detail=f"unknown timezone {tz!r}") from None

    records = [r for r in store.progress.values() if r.student_id == actor.id]
    stats = learning_stats(
        records,
        service.overall_progress(actor.id),
        today=clock().astimezone(zone).date(),
        tz=zone,
    )
    return LearningStatsOut.model_validate(stats)


@router.get("/{course_id}", response_model=ProgressOut)
def get_course_progress(
    course_id: str,
    actor: Annotated[Actor, Depends(require_role(STUDENT))],
    store: Annotated[EntityStore, Depends(get_store)],
) -> ProgressOut:
    course = store.courses.get(course_id)
    if course is None or find_enrollment(actor.id, course_id, store.enrollments) is None:
        raise _not_enrolled()
    return ProgressOut.model_validate(
        student_progress(actor.id, course, store.progress)
    )


@router.put("/{course_id}", response_model=ProgressOut)
def update_course_progress(
    course_id: str,
    body: ProgressUpdateIn,
    actor: Annotated[Actor, Depends(require_role(STUDENT))],
    service: Annotated[EnrollmentService, Depends(get_enrollment_service)],
) -> ProgressOut:
    try:
        record = service.update_progress(
            actor,
            course_id,
            ProgressUpdate(
                completed_lessons=body.completed_lessons,
                total_lessons=body.total_lessons,
            ),
        )
    except NotEnrolledError:
        raise _not_enrolled() from None
    return ProgressOut.model_validate(record)


@router.post("/{course_id}/lessons", response_model=ProgressOut)
def complete_lessons(
    course_id: str,
    body: LessonsIn,
    actor: Annotated[Actor, Depends(require_role(STUDENT))],
    service: Annotated[EnrollmentService, Depends(get_enrollment_service)],
) -> ProgressOut:
    try:
        record = service.complete_lessons(actor, course_id, body.count)
    except NotEnrolledError:
        raise _not_enrolled() from None
    return ProgressOut.model_validate(record)
