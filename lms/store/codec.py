"""JSON codec for the four persisted collections.

Slot layout in the key-value port:

  courses       JSON array of Course objects, insertion order kept
  assignments   JSON array of Assignment objects
  enrollments   JSON array of Enrollment objects
  progress      JSON object {"<student_id>:<course_id>": ProgressRecord}

pydantic TypeAdapters do both directions over the frozen dataclass
models, so timestamps travel as ISO-8601 strings and come back as
timezone-aware datetimes equal to the originals.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import TypeAdapter, ValidationError

from lms.models.assignment import Assignment
from lms.models.course import Course
from lms.models.enrollment import Enrollment
from lms.models.progress import ProgressRecord, progress_key

logger = logging.getLogger(__name__)


class CollectionKind(str, Enum):
    COURSES = "courses"
    ASSIGNMENTS = "assignments"
    ENROLLMENTS = "enrollments"
    PROGRESS = "progress"


class MalformedPersistedDataError(Exception):
    """A slot held content that is not a valid collection of its kind."""

    def __init__(self, kind: CollectionKind, reason: str) -> None:
        super().__init__(f"malformed {kind.value} payload: {reason}")
        self.kind = kind
        self.reason = reason


_COURSES = TypeAdapter(list[Course])
_ASSIGNMENTS = TypeAdapter(list[Assignment])
_ENROLLMENTS = TypeAdapter(list[Enrollment])
_PROGRESS = TypeAdapter(dict[str, ProgressRecord])


def encode(kind: CollectionKind, collection: Mapping[Any, Any]) -> str:
    if kind is CollectionKind.COURSES:
        return _COURSES.dump_json(list(collection.values())).decode("utf-8")
    if kind is CollectionKind.ASSIGNMENTS:
        return _ASSIGNMENTS.dump_json(list(collection.values())).decode("utf-8")
    if kind is CollectionKind.ENROLLMENTS:
        return _ENROLLMENTS.dump_json(list(collection.values())).decode("utf-8")
    payload = {progress_key(r.student_id, r.course_id): r for r in collection.values()}
    return _PROGRESS.dump_json(payload).decode("utf-8")


def decode(kind: CollectionKind, raw: str) -> dict[Any, Any]:
    """Parse one slot into its in-memory mapping.

    Raises MalformedPersistedDataError for invalid JSON or schema.
    """
    try:
        if kind is CollectionKind.COURSES:
            return {c.id: c for c in _COURSES.validate_json(raw)}
        if kind is CollectionKind.ASSIGNMENTS:
            return {a.id: a for a in _ASSIGNMENTS.validate_json(raw)}
        if kind is CollectionKind.ENROLLMENTS:
            return _unique_enrollments(_ENROLLMENTS.validate_json(raw))
        records = _PROGRESS.validate_json(raw)
    except ValidationError as e:
        raise MalformedPersistedDataError(kind, f"{e.error_count()} error(s)") from e
    return {r.key: r for r in records.values()}


def _unique_enrollments(enrollments: list[Enrollment]) -> dict[str, Enrollment]:
    # At most one enrollment per (student, course); the earliest stored wins.
    seen: set[tuple[str, str]] = set()
    out: dict[str, Enrollment] = {}
    for e in enrollments:
        pair = (e.student_id, e.course_id)
        if pair in seen:
            logger.warning(
                "Dropped duplicate stored enrollment id=%s student=%s course=%s",
                e.id,
                e.student_id,
                e.course_id,
            )
            continue
        seen.add(pair)
        out[e.id] = e
    return out
