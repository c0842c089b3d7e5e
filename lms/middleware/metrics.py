"""Prometheus metrics middleware: instruments every HTTP request.

The endpoint label is the matched route template ("/v1/courses/{course_id}")
rather than the raw path, so course and assignment ids do not create a
new time series per entity.  Unmatched paths are labelled "unmatched".
Scrapes of /metrics are not counted.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from lms.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

_UNCOUNTED_PATHS = frozenset({"/metrics"})


def _endpoint_label(request: Request) -> str:
    # The router stores the matched route in the shared scope.
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in _UNCOUNTED_PATHS:
            return await call_next(request)

        status_code = 500
        started = time.perf_counter()
        with ACTIVE_REQUESTS.track_inprogress():
            try:
                response = await call_next(request)
                status_code = response.status_code
            finally:
                endpoint = _endpoint_label(request)
                REQUEST_COUNT.labels(
                    method=request.method, endpoint=endpoint, status_code=str(status_code)
                ).inc()
                REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(
                    time.perf_counter() - started
                )
        return response
