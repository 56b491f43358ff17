"""Prometheus metrics inventory.

Every metric the service exports is defined here; the modules that own
the behavior import the metric and increment it at the point of action.

HTTP metrics are filled in by MetricsMiddleware.  The domain counters
track the entitlement lifecycle:

  entitlement_grants_total{source, outcome}
      source:  "payment_event" | "direct_purchase"
      outcome: "created" | "already_granted" | "unavailable"

  payment_events_total{result}
      result:  "granted" | "duplicate" | "ignored_type" |
               "ignored_metadata" | "failed"

  access_decisions_total{decision}
      decision: "allow" | "deny"
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
# Domain metrics
# ---------------------------------------------------------------------------

ENTITLEMENT_GRANTS = Counter(
    "entitlement_grants_total",
    "Entitlement grant attempts by source and outcome",
    ["source", "outcome"],
)

PAYMENT_EVENTS = Counter(
    "payment_events_total",
    "Verified payment-provider events by processing result",
    ["result"],
)

ACCESS_DECISIONS = Counter(
    "access_decisions_total",
    "Course content access decisions",
    ["decision"],
)

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["key_type"],  # "user" or "ip"
)
