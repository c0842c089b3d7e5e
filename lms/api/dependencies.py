from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from lms.models.actor import Actor
from lms.services.course_service import CourseService
from lms.services.enrollment_service import EnrollmentService
from lms.services.guards import Clock
from lms.store.entity_store import EntityStore, StoreNotLoadedError

logger = logging.getLogger(__name__)


def get_store(request: Request) -> EntityStore:
    """The EntityStore the app was created with (see create_app)."""
    return request.app.state.store


def get_loaded_store(
    store: Annotated[EntityStore, Depends(get_store)],
) -> EntityStore:
    """The store, for the services.  503 while the port has never been read.

    A store that failed its startup load holds empty collections, and
    committing those would overwrite the port.
    """
    try:
        store.ensure_loaded()
    except StoreNotLoadedError as e:
        logger.warning("Request refused: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Store unavailable",
        ) from None
    return store


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_enrollment_service(
    store: Annotated[EntityStore, Depends(get_loaded_store)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> EnrollmentService:
    return EnrollmentService(store, clock=clock)


def get_course_service(
    store: Annotated[EntityStore, Depends(get_loaded_store)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> CourseService:
    return CourseService(store, clock=clock)


def get_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
    x_user_name: Annotated[str | None, Header()] = None,
    x_user_email: Annotated[str | None, Header()] = None,
) -> Actor:
    """Build the Actor from headers set by the upstream identity proxy.

    The proxy has already authenticated the caller; a request without
    X-User-Id never went through it and is rejected.
    """
    if not x_user_id or not x_user_id.strip():
        logger.warning("Request without X-User-Id rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing identity",
        )
    return Actor(
        id=x_user_id.strip(),
        role=(x_user_role or "").strip().lower(),
        name=(x_user_name or "").strip(),
        email=(x_user_email or "").strip(),
    )


def require_role(role: str):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role("teacher"))
    Returns the Actor if the role matches, else 403.
    """

    def _guard(actor: Annotated[Actor, Depends(get_actor)]) -> Actor:
        if actor.role != role:
            logger.warning(
                "Access denied: user=%s role=%s required=%s",
                actor.id,
                actor.role,
                role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Only a {role} can do this",
            )
        return actor

    return _guard
