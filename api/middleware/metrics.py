"""
Prometheus metrics middleware for the order support API.

Exposes /metrics with request counters, latency histograms and the
support-specific business metrics.
"""

import logging
import time
from typing import Optional

from fastapi import Request, Response
from prometheus_client import (
    Counter, Histogram, Gauge,
    generate_latest, CONTENT_TYPE_LATEST,
)
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Request metrics
REQUEST_COUNT = Counter(
    "support_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "support_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)
ACTIVE_REQUESTS = Gauge(
    "support_http_active_requests",
    "Currently active HTTP requests",
)

# Business metrics
LLM_LATENCY = Histogram(
    "support_llm_duration_seconds",
    "Reply generation latency, fallbacks included",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
)
CHAT_TURNS = Counter(
    "support_chat_turns_total",
    "Chat turns by reply path",
    ["path"],
)
ESCALATIONS = Counter(
    "support_escalations_total",
    "Conversations handed to a human",
    ["trigger"],
)
CLASSIFICATIONS = Counter(
    "support_behavior_classifications_total",
    "Behaviour evaluations that produced a prompt",
    ["classification"],
)


def record_chat_turn(path: str, llm_seconds: Optional[float] = None):
    """Record a chat turn and, when the model was called, its latency."""
    CHAT_TURNS.labels(path=path).inc()
    if llm_seconds is not None:
        LLM_LATENCY.observe(llm_seconds)


def record_escalation(trigger: str):
    ESCALATIONS.labels(trigger=trigger).inc()


def record_classification(classification: str):
    CLASSIFICATIONS.labels(classification=classification).inc()


def _endpoint_label(request: Request) -> str:
    # Route template keeps ids out of the label set
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware that records HTTP request metrics."""

    async def dispatch(self, request: Request, call_next):
        ACTIVE_REQUESTS.inc()
        start = time.time()

        try:
            response = await call_next(request)
        finally:
            ACTIVE_REQUESTS.dec()

        duration = time.time() - start
        endpoint = _endpoint_label(request)

        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()
        REQUEST_LATENCY.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)

        return response


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
