"""Prometheus metrics for fluenthttp requests."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

LOGGER = logging.getLogger(__name__)

_REGISTRY = CollectorRegistry()


def _histogram(name: str, documentation: str, *, buckets: Iterable[float]) -> Histogram:
    return Histogram(name, documentation, buckets=tuple(buckets), registry=_REGISTRY)


def _counter(name: str, documentation: str, *, label_names: Optional[Iterable[str]] = None) -> Counter:
    if label_names:
        return Counter(name, documentation, labelnames=list(label_names), registry=_REGISTRY)
    return Counter(name, documentation, registry=_REGISTRY)


REQUESTS = _counter(
    "fluenthttp_requests_total",
    "Number of fluenthttp requests grouped by method and outcome.",
    label_names=["method", "outcome"],
)
REQUEST_DURATION = _histogram(
    "fluenthttp_request_duration_seconds",
    "Histogram of fluenthttp request durations in seconds.",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
)


def record_request(method: str, outcome: str, duration: float) -> None:
    """Count a finished request; ``outcome`` is ``"success"`` or an error label."""

    LOGGER.debug(
        "metrics.request",
        extra={"event": "request.finished", "method": method, "outcome": outcome, "duration": duration},
    )
    REQUESTS.labels(method=method, outcome=outcome).inc()
    REQUEST_DURATION.observe(duration)


def request_count(method: str, outcome: str) -> float:
    value = _REGISTRY.get_sample_value(
        "fluenthttp_requests_total", {"method": method, "outcome": outcome}
    )
    return value or 0.0


def metrics_payload() -> tuple[bytes, str]:
    """Return the Prometheus exposition payload and its content type."""

    return generate_latest(_REGISTRY), CONTENT_TYPE_LATEST


__all__ = [
    "metrics_payload",
    "record_request",
    "request_count",
]
