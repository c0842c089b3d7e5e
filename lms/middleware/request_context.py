"""Request context middleware: request id and acting user on every log line.

Each request gets an id (the caller's X-Request-ID, or a fresh uuid4).
The id and the X-User-Id forwarded by the identity proxy are bound to
ContextVars for the duration of the request; RequestContextFilter copies
them onto every LogRecord, so "Rejected enroll: student s-1 is already
enrolled in c-9" can be tied back to the request that caused it.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
actor_id_var: ContextVar[str | None] = ContextVar("actor_id", default=None)


class RequestContextFilter(logging.Filter):
    """Attach request_id and actor_id from the ContextVars to each record.

    Installed on the stdout handler by setup_logging(), so records from
    every module pass through it.  An actor_id passed explicitly via
    `extra=` wins over the bound one.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        if getattr(record, "actor_id", None) is None:
            record.actor_id = actor_id_var.get()  # type: ignore[attr-defined]
        return True


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request id and actor, time the request, log one summary line.

    5xx responses are logged at ERROR so they stand out from the routine
    404s and 409s the engine produces.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        actor_id = request.headers.get("x-user-id") or None
        request_token = request_id_var.set(request_id)
        actor_token = actor_id_var.set(actor_id)

        started = time.perf_counter()
        try:
            response = await call_next(request)
            context = {
                "request_id": request_id,
                "actor_id": actor_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            }
            logger.log(
                logging.ERROR if response.status_code >= 500 else logging.INFO,
                "%(method)s %(path)s -> %(status_code)d in %(duration_ms).1fms",
                context,
                extra=context,
            )
        finally:
            request_id_var.reset(request_token)
            actor_id_var.reset(actor_token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
