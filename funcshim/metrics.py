"""Prometheus metrics helpers."""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

INVOCATIONS_TOTAL = Counter(
    "funcshim_invocations_total",
    "Number of function invocations by outcome",
    labelnames=("signature_type", "outcome"),
    registry=REGISTRY,
)

INVOCATION_LATENCY = Histogram(
    "funcshim_invocation_latency_seconds",
    "Latency of function invocations",
    labelnames=("signature_type",),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)


def observe_invocation(*, signature_type: str, latency_ms: float, failed: bool) -> None:
    outcome = "failure" if failed else "success"
    INVOCATIONS_TOTAL.labels(signature_type=signature_type or "unknown", outcome=outcome).inc()
    INVOCATION_LATENCY.labels(signature_type=signature_type or "unknown").observe(
        latency_ms / 1000.0
    )


def render_metrics() -> tuple[bytes, str]:
    payload = generate_latest(REGISTRY)
    return payload, CONTENT_TYPE_LATEST
