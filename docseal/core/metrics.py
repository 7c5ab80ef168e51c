"""Prometheus metric inventory.

Every metric the service exports is declared here; the owning module
imports it and increments at the point of action.  Label values are kept
to small fixed sets (outcomes, route templates), never document ids.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, route and status code",
    ["method", "route", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "route"],
    # Signing includes an Argon2 verify (tens to hundreds of ms)
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Document integrity metrics
# ---------------------------------------------------------------------------

SIGNING_OUTCOMES = Counter(
    "letter_signing_total",
    "Sign attempts by outcome",
    # signed|already_signed|not_found|rate_limited|bad_secret_key|inactive_signer
    ["outcome"],
)

VERIFICATION_RESULTS = Counter(
    "document_verifications_total",
    "Public verification lookups by document type and result",
    ["document_type", "result"],  # letter|certificate|unknown, valid|tampered|unsigned|not_found
)

ATTEMPT_BLOCKS = Counter(
    "secret_key_attempt_blocks_total",
    "Signers blocked after reaching the failed-attempt threshold",
)

CERTIFICATE_CLAIMS = Counter(
    "certificate_claims_total",
    "Certificate claim attempts by outcome",
    ["outcome"],  # claimed|deadline_passed|not_found
)
