"""Prometheus metrics for the HTTP layer and the booking engine."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from time import perf_counter

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

LATENCY_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

HTTP_REQUESTS_TOTAL = Counter(
    "salon_booking_http_requests_total",
    "HTTP requests served, by route template and status code.",
    ["method", "path", "status_code"],
)
HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "salon_booking_http_request_duration_seconds",
    "HTTP request latency in seconds.",
    ["method", "path"],
    buckets=LATENCY_BUCKETS,
)

RESERVATIONS_TOTAL = Counter(
    "salon_booking_reservations_total",
    "Reservation attempts by outcome (accepted or rejection reason).",
    ["outcome"],
)
SLOTS_GENERATED_TOTAL = Counter(
    "salon_booking_slots_generated_total",
    "Slots created by recurring pattern expansion.",
)
REFUNDS_TOTAL = Counter(
    "salon_booking_refunds_total",
    "Refund step outcomes of cancellations.",
    ["outcome"],
)
REFUND_GATEWAY_DURATION_SECONDS = Histogram(
    "salon_booking_refund_gateway_duration_seconds",
    "Time spent waiting on the payment processor for a refund.",
    ["outcome"],
    buckets=LATENCY_BUCKETS + (15.0, 30.0),
)


def route_label(request: Request) -> str:
    """Route template (``/booking/{booking_id}``) so ids do not explode label cardinality."""
    route = request.scope.get("route")
    return str(getattr(route, "path", None) or request.url.path)


async def instrument_http_request(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    started_at = perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        method, path = request.method.upper(), route_label(request)
        HTTP_REQUESTS_TOTAL.labels(method=method, path=path, status_code=str(status_code)).inc()
        HTTP_REQUEST_DURATION_SECONDS.labels(method=method, path=path).observe(perf_counter() - started_at)


def build_metrics_response() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
