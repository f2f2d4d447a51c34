"""API Telemetry — OpenTelemetry tracer and metric instruments for request handling.

Invariants:
    - Instruments are created once at import against the global providers
    - Latency is recorded for every request, success or failure
    - Error counter attributes are exactly {endpoint, status_code}

Design Decisions:
    - opentelemetry-api only: without an SDK provider every call is a no-op;
      deployments install the SDK and exporters they need
"""

import time
from contextlib import contextmanager
from typing import Iterator

from opentelemetry import metrics, trace

SPAN_NAMESPACE = "dvstore.api"

tracer = trace.get_tracer(SPAN_NAMESPACE)
meter = metrics.get_meter(SPAN_NAMESPACE)

api_latency = meter.create_histogram(
    "dvstore_api_latency_seconds",
    unit="s",
    description="API endpoint request latency",
)
api_errors = meter.create_counter(
    "dvstore_api_error_total",
    description="API endpoint error responses by status code",
)


def span_name(endpoint: str) -> str:
    return f"{SPAN_NAMESPACE}.{endpoint}"


@contextmanager
def observe_api_latency(endpoint: str) -> Iterator[None]:
    """Record the wall time of the enclosed block against endpoint."""
    t0 = time.monotonic()
    try:
        yield
    finally:
        api_latency.record(time.monotonic() - t0, {"endpoint": endpoint})


def inc_api_errors(endpoint: str, status_code: int) -> None:
    api_errors.add(1, {"endpoint": endpoint, "status_code": status_code})
