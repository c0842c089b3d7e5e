from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TypeVar

from lms.core.metrics import ENGINE_OPERATIONS
from lms.models.actor import Actor
from lms.services.errors import LmsError, NotOwnerError, RoleNotAllowedError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

E = TypeVar("E", bound=LmsError)


def utcnow() -> datetime:
    return datetime.now(UTC)


def rejected(operation: str, error: E) -> E:
    """Log and count a rejected operation; returns the error for raising."""
    ENGINE_OPERATIONS.labels(operation=operation, result=type(error).__name__).inc()
    logger.warning("Rejected %s: %s", operation, error)
    return error


def succeeded(operation: str) -> None:
    ENGINE_OPERATIONS.labels(operation=operation, result="ok").inc()


def require_role(actor: Actor, role: str, operation: str) -> None:
    if actor.role != role:
        raise rejected(operation, RoleNotAllowedError(actor.role, role))


def require_owner(actor: Actor, owner_id: str, what: str, operation: str) -> None:
    if actor.id != owner_id:
        raise rejected(
            operation, NotOwnerError(f"{what} is owned by another teacher")
        )
