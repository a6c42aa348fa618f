# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics, single source of truth for all metric objects.
Imported by services, stores and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "oncall_requests_total",
    "Total HTTP requests to on-call schedule service",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "oncall_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "oncall_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Business Metrics (updated by service and store layers only) ──
SCHEDULES_CREATED = Counter(
    "oncall_schedules_created_total",
    "Total schedules created",
    ["store"],
)
ONCALL_LOOKUPS = Counter(
    "oncall_lookups_total",
    "Total on-call resolutions performed",
    ["outcome"],
)
STORE_ERRORS = Counter(
    "oncall_store_errors_total",
    "Total backing store failures",
    ["operation"],
)
ROTATION_ADVANCES = Counter(
    "oncall_rotation_advances_total",
    "Total rotation pointer advances",
)
