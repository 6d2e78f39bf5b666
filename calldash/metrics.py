"""Prometheus metrics for the CallDash API."""

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "calldash_requests_total",
    "Total number of requests",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "calldash_request_latency_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)

AUTH_OUTCOMES = Counter(
    "calldash_auth_outcomes_total",
    "Auth operations by outcome",
    ["operation", "outcome"],  # outcome: ok or an AuthErrorKind value
)
