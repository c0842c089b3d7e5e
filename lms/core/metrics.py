"""Application metrics using the Prometheus client library.

Every metric the service exposes is defined here so the inventory stays
in one place.  Modules import the metric they own and increment it at
the point of action; `/metrics` renders the registry.

  HTTP traffic        REQUEST_COUNT, REQUEST_DURATION, ACTIVE_REQUESTS
  Entity store        STORE_LOADS, STORE_MALFORMED, STORE_WRITES,
                      STORE_REFRESHES
  Engine operations   ENGINE_OPERATIONS (by operation and outcome)
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Entity store metrics
# ---------------------------------------------------------------------------

STORE_LOADS = Counter(
    "store_loads_total",
    "Collections read from the key-value port",
    ["collection", "result"],  # "ok" | "missing" | "malformed"
)

STORE_MALFORMED = Counter(
    "store_malformed_collections_total",
    "Collections replaced by an empty one because the stored payload was invalid",
    ["collection"],
)

STORE_WRITES = Counter(
    "store_writes_total",
    "Collections written to the key-value port",
    ["collection", "result"],  # "ok" | "error"
)

STORE_REFRESHES = Counter(
    "store_refreshes_total",
    "Refresh passes by outcome",
    ["result"],  # "changed" | "unchanged" | "error"
)

# ---------------------------------------------------------------------------
# Engine metrics
# ---------------------------------------------------------------------------

ENGINE_OPERATIONS = Counter(
    "engine_operations_total",
    "Mutating engine operations by outcome",
    ["operation", "result"],  # result: "ok" or the rejecting error class
)
