"""Prometheus metric inventory.

Every metric the service exposes is defined here; modules import the one
they own and increment/observe it at the point of action.

HTTP metrics are labelled by ROUTE TEMPLATE (e.g. /v1/verify/{certificate_id}),
not by raw path.  Certificate ids are unbounded, and one label value per id
would grow the time-series count without limit.
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
# Certificate metrics
# ---------------------------------------------------------------------------

CERTIFICATES_ISSUED = Counter(
    "certificates_issued_total",
    "Issuance requests that returned a certificate",
    ["result"],  # "created" or "existing"
)

CERTIFICATE_VALIDATIONS = Counter(
    "certificate_validations_total",
    "Public validation attempts by outcome",
    ["outcome"],  # valid|expired|revoked|invalid_token|not_found|timeout
)

RENDER_FAILURES = Counter(
    "certificate_render_failures_total",
    "PDF renders that raised",
)

RENDER_DURATION = Histogram(
    "certificate_render_seconds",
    "Time spent rendering a certificate PDF",
    # reportlab + QR encoding typically lands in the 20-200ms range
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["endpoint"],
)
