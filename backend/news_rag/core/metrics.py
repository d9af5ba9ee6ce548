"""Prometheus metrics instrumentation."""

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

QUERY_COUNT = Counter(
    "newsrag_queries_total",
    "Total processed queries",
    labelnames=("mode", "outcome"),
    registry=REGISTRY,
)

QUERY_LATENCY = Histogram(
    "newsrag_query_latency_seconds",
    "End-to-end query latency",
    labelnames=("mode",),
    registry=REGISTRY,
)

EMBEDDING_FALLBACKS = Counter(
    "newsrag_embedding_fallbacks_total",
    "Embeddings served by the local hashed fallback",
    labelnames=("reason",),
    registry=REGISTRY,
)

GENERATION_FALLBACKS = Counter(
    "newsrag_generation_fallbacks_total",
    "Answers served by the templated fallback",
    labelnames=("kind",),
    registry=REGISTRY,
)

INDEX_SIZE = Gauge(
    "newsrag_index_chunks",
    "Number of chunks stored in the vector store",
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "QUERY_COUNT",
    "QUERY_LATENCY",
    "EMBEDDING_FALLBACKS",
    "GENERATION_FALLBACKS",
    "INDEX_SIZE",
    "metrics_response",
]
