"""Prometheus collectors for presence, search, channel validation and HTTP traffic."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "chatws_requests_total",
    "Total HTTP requests",
    labelnames=("endpoint", "method", "status"),
    registry=REGISTRY,
)

PRESENCE_WRITES = Counter(
    "chatws_presence_writes_total",
    "Presence writes issued by trackers",
    labelnames=("status", "outcome"),
    registry=REGISTRY,
)

ONLINE_USERS = Gauge(
    "chatws_online_users",
    "Users whose cached presence is online",
    registry=REGISTRY,
)

SEARCH_LATENCY = Histogram(
    "chatws_search_latency_seconds",
    "Latency of search sub-queries",
    labelnames=("category",),
    registry=REGISTRY,
)

SEARCH_FAILURES = Counter(
    "chatws_search_failures_total",
    "Sub-searches that raised and were degraded to empty results",
    labelnames=("category",),
    registry=REGISTRY,
)

MALFORMED_CHANNELS = Counter(
    "chatws_malformed_channels_total",
    "Channel records dropped by validation",
    labelnames=("reason",),
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Render the service registry in the Prometheus text format."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "PRESENCE_WRITES",
    "ONLINE_USERS",
    "SEARCH_LATENCY",
    "SEARCH_FAILURES",
    "MALFORMED_CHANNELS",
    "metrics_response",
]
