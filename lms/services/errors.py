from __future__ import annotations


class LmsError(Exception):
    """Base class for rejections raised by the engine services."""


class AlreadyEnrolledError(LmsError):
    def __init__(self, student_id: str, course_id: str) -> None:
        super().__init__(f"student {student_id} is already enrolled in {course_id}")
        self.student_id = student_id
        self.course_id = course_id


class NotEnrolledError(LmsError):
    def __init__(self, student_id: str, course_id: str) -> None:
        super().__init__(f"student {student_id} is not enrolled in {course_id}")
        self.student_id = student_id
        self.course_id = course_id


class RoleNotAllowedError(LmsError):
    def __init__(self, role: str, required: str) -> None:
        super().__init__(f"role {role!r} cannot do this (requires {required!r})")
        self.role = role
        self.required = required


class CourseNotFoundError(LmsError, LookupError):
    pass


class AssignmentNotFoundError(LmsError, LookupError):
    pass


class SubmissionNotFoundError(LmsError, LookupError):
    pass


class NotOwnerError(LmsError):
    pass


class InvalidGradeError(LmsError, ValueError):
    pass
