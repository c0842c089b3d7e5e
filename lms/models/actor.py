from __future__ import annotations

from dataclasses import dataclass

TEACHER = "teacher"
STUDENT = "student"


@dataclass(frozen=True, slots=True)
class Actor:
    """Current user as supplied by the identity collaborator.

    Carried through the request via FastAPI's dependency system and
    handed to every service operation.  role is the only dispatch
    dimension: "teacher" and "student" get scoped views, anything else
    sees unfiltered collections.
    """

    id: str
    role: str
    name: str = ""
    email: str = ""

    @property
    def is_student(self) -> bool:
        return self.role == STUDENT
