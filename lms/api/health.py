"""Health and readiness endpoints.

  /health (liveness): always 200 while the process can answer; the
    body's "status" says "degraded" when Redis is configured but not
    answering.  Also reports how many items each collection holds.

  /ready (readiness): 503 when the configured Redis is unreachable or
    the store has never loaded and a retried load still fails,
    so the load balancer stops routing writes that could not persist.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from lms.api.dependencies import get_store
from lms.db.redis import ping_redis
from lms.store.entity_store import EntityStore, StoreNotLoadedError

router = APIRouter(tags=["health"])


@router.get("/health")
def health(store: Annotated[EntityStore, Depends(get_store)]) -> dict:
    redis_status = ping_redis()
    snap = store.snapshot()
    return {
        "status": "degraded" if redis_status == "degraded" else "ok",
        "checks": {"redis": redis_status},
        "store": {
            "courses": len(snap.courses),
            "assignments": len(snap.assignments),
            "enrollments": len(snap.enrollments),
            "progress": len(snap.progress),
        },
    }


@router.get("/ready")
def ready(store: Annotated[EntityStore, Depends(get_store)]) -> Response:
    if ping_redis() == "degraded":
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    try:
        store.ensure_loaded()
    except StoreNotLoadedError:
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
