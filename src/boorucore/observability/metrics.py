"""
Defines the Prometheus metrics boorucore records.
"""

from __future__ import annotations

from typing import Any, Dict

from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Histogram as _OrigHistogram

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Re-importing this module (test reloads, multiple entry points in one process)
# must not trip prometheus_client's duplicate registration check.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "requests_total": Counter(
            "boorucore_requests_total",
            "Adapter calls by site and outcome (ok or the error class name)",
            ["site", "outcome"],
        ),
        "request_latency_seconds": Histogram(
            "boorucore_request_latency_seconds",
            "Time taken by one logical request including retries",
            ["site"],
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
        ),
        "cache_hits_total": Counter(
            "boorucore_cache_hits_total",
            "Executor lookups served from the response cache",
            ["site"],
        ),
        "cache_misses_total": Counter(
            "boorucore_cache_misses_total",
            "Executor lookups that went to the network",
            ["site"],
        ),
        "retries_total": Counter(
            "boorucore_retries_total",
            "Retry attempts after transient failures",
            ["error"],
        ),
        "rate_limit_wait_seconds": Histogram(
            "boorucore_rate_limit_wait_seconds",
            "Time spent waiting for a rate limiter permit",
            buckets=[0.0, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
        ),
        "posts_streamed_total": Counter(
            "boorucore_posts_streamed_total",
            "Posts yielded by post streams",
            ["site"],
        ),
        "downloads_total": Counter(
            "boorucore_downloads_total",
            "Download attempts by outcome (downloaded, skipped, failed)",
            ["outcome"],
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()
