"""Prometheus metric definitions for the payment bridge."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


stk_push_requests_total = Counter("stk_push_requests_total", "Total STK push initiation requests", ["service"])
stk_push_initiated_total = Counter(
    "stk_push_initiated_total",
    "STK push requests accepted by the gateway",
    ["service"],
)
stk_push_failures_total = Counter(
    "stk_push_failures_total",
    "STK push initiations that failed",
    ["service", "reason"],
)
gateway_request_duration_seconds = Histogram(
    "gateway_request_duration_seconds",
    "Outbound gateway call duration seconds",
    ["service", "endpoint"],
)
token_cache_hits_total = Counter("token_cache_hits_total", "Access tokens served from cache", ["service"])
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
