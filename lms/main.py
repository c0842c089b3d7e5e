from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lms.api.assignments import router as assignments_router
from lms.api.courses import router as courses_router
from lms.api.health import router as health_router
from lms.api.metrics_endpoint import router as metrics_router
from lms.api.progress import router as progress_router
from lms.api.store import router as store_router
from lms.core.config import SETTINGS
from lms.core.logging import setup_logging
from lms.db.redis import lifespan_redis, redis_client
from lms.middleware.metrics import MetricsMiddleware
from lms.middleware.request_context import RequestContextFilter, RequestContextMiddleware
from lms.repos.kv_repo import InMemoryKeyValueRepo, KeyValueRepo, RedisKeyValueRepo
from lms.services.guards import Clock, utcnow
from lms.services.refresher import refresh_forever
from lms.store.entity_store import EntityStore

# Configure logging before anything else runs.
setup_logging(
    SETTINGS.log_level,
    json_format=SETTINGS.log_json,
    filters=[RequestContextFilter()],
)

logger = logging.getLogger(__name__)


def build_store() -> EntityStore:
    """EntityStore on Redis when REDIS_URL is set, in memory otherwise."""
    repo: KeyValueRepo
    if redis_client is not None:
        repo = RedisKeyValueRepo(redis_client, prefix=SETTINGS.store_key_prefix)
    else:
        repo = InMemoryKeyValueRepo()
    return EntityStore(repo)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_redis():
        store: EntityStore = app.state.store
        try:
            await asyncio.to_thread(store.load)
        except Exception:
            # Writes and /ready retry the load; until one succeeds they get 503.
            logger.exception("Initial store load failed")

        refresher: asyncio.Task[None] | None = None
        if SETTINGS.refresh_enabled:
            refresher = asyncio.create_task(
                refresh_forever(store, SETTINGS.store_refresh_seconds)
            )
        try:
            yield
        finally:
            if refresher is not None:
                refresher.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await refresher


def create_app(store: EntityStore | None = None, *, clock: Clock = utcnow) -> FastAPI:
    """Build the application around an explicit store.

    Tests pass an EntityStore over an InMemoryKeyValueRepo; production
    uses build_store().
    """
    app = FastAPI(
        title="lms-data-service",
        lifespan=lifespan,
        docs_url="/docs" if SETTINGS.is_dev else None,
        redoc_url="/redoc" if SETTINGS.is_dev else None,
    )
    app.state.store = store if store is not None else build_store()
    app.state.clock = clock

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Last-added runs first: RequestContext → Metrics → CORS → route
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.include_router(metrics_router)
    app.include_router(health_router)
    app.include_router(courses_router)
    app.include_router(assignments_router)
    app.include_router(progress_router)
    app.include_router(store_router)
    return app


app = create_app()

logger.info(
    "lms-data-service started  env=%s log_level=%s port=%d store=%s refresh=%ss",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "redis" if redis_client is not None else "memory",
    SETTINGS.store_refresh_seconds,
)
