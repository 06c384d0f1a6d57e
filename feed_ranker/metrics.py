"""Prometheus metrics and OpenTelemetry tracing for the Feed Ranker.

This module provides observability instrumentation for the ranking engine:
- Prometheus metrics for feed requests, candidate pools and data source calls
- OpenTelemetry tracing for request correlation and debugging

Usage:
    from feed_ranker.metrics import feed_requests_total, get_tracer, traced

    # Metrics are updated by FeedService and the data sources.
    # Access the metrics endpoint at /metrics on the API server.
"""

import inspect
import logging
import time
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Generator, Optional

from opentelemetry import trace
from prometheus_client import Counter, Histogram, Info

logger = logging.getLogger(__name__)

# ============================================================================
# Prometheus Metrics Definitions
# ============================================================================

# --- Feed Metrics ---
feed_requests_total = Counter(
    "feed_ranker_feed_requests_total",
    "Total number of personalized feed requests",
    ["outcome"],  # ranked, empty, error
)

feed_request_duration_seconds = Histogram(
    "feed_ranker_feed_request_duration_seconds",
    "Personalized feed ranking duration in seconds",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

candidate_pool_size_histogram = Histogram(
    "feed_ranker_candidate_pool_size",
    "Number of candidates fetched per feed request",
    buckets=(0, 5, 10, 20, 30, 45, 60, 80, 100),
)

diversity_dropped_total = Counter(
    "feed_ranker_diversity_dropped_total",
    "Total number of candidates dropped by the author diversity window",
)

preference_load_failures_total = Counter(
    "feed_ranker_preference_load_failures_total",
    "Total number of preference fetches that degraded to an empty set",
    ["preference"],  # authors, categories, tags, reading_history
)

trending_requests_total = Counter(
    "feed_ranker_trending_requests_total",
    "Total number of trending requests",
)

# --- Data Source Metrics ---
data_source_operations_total = Counter(
    "feed_ranker_data_source_operations_total",
    "Total number of data source operations",
    ["operation", "status"],
)

data_source_operation_duration_seconds = Histogram(
    "feed_ranker_data_source_operation_duration_seconds",
    "Data source operation duration in seconds",
    ["operation"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

# --- API Metrics ---
api_requests_total = Counter(
    "feed_ranker_api_requests_total",
    "Total number of API requests",
    ["method", "endpoint", "status_code"],
)

api_request_duration_seconds = Histogram(
    "feed_ranker_api_request_duration_seconds",
    "API request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# --- System Info ---
system_info = Info(
    "feed_ranker_system",
    "Feed Ranker system information",
)


# ============================================================================
# OpenTelemetry Tracing
# ============================================================================

_tracer: Optional[Any] = None


def get_tracer(name: str = "feed_ranker") -> Any:
    """Get or create an OpenTelemetry tracer.

    Without a configured SDK, OpenTelemetry hands out a no-op tracer.

    Args:
        name: The name of the tracer (typically the module name).

    Returns:
        An OpenTelemetry tracer.
    """
    global _tracer

    if _tracer is None:
        _tracer = trace.get_tracer(name)
    return _tracer


# ============================================================================
# Instrumentation Helpers
# ============================================================================


@contextmanager
def track_feed_request(user_id: str) -> Generator[Any, None, None]:
    """Context manager to track a personalized feed request.

    Records the duration and, on failure, an ``error`` outcome. The caller
    records ``ranked`` or ``empty`` via record_feed_outcome().

    Args:
        user_id: The user the feed is ranked for.

    Yields:
        The active span.
    """
    tracer = get_tracer()
    start_time = time.time()

    try:
        with tracer.start_as_current_span("feed.rank", attributes={"feed.user_id": user_id}) as span:
            yield span
    except Exception:
        feed_requests_total.labels(outcome="error").inc()
        raise
    finally:
        feed_request_duration_seconds.observe(time.time() - start_time)


@contextmanager
def track_data_source_operation(operation: str) -> Generator[None, None, None]:
    """Context manager to track data source operation metrics.

    Args:
        operation: The operation name (load_followed_ids, fetch_candidates, ...).

    Yields:
        None
    """
    tracer = get_tracer()
    start_time = time.time()

    try:
        with tracer.start_as_current_span(
            f"data_source.{operation}",
            attributes={"data_source.operation": operation},
        ):
            yield
        data_source_operations_total.labels(operation=operation, status="ok").inc()
    except Exception:
        data_source_operations_total.labels(operation=operation, status="error").inc()
        raise
    finally:
        data_source_operation_duration_seconds.labels(operation=operation).observe(time.time() - start_time)


def record_feed_outcome(outcome: str) -> None:
    """Record the outcome of a feed request (ranked or empty)."""
    feed_requests_total.labels(outcome=outcome).inc()


def record_candidate_pool(size: int) -> None:
    """Record the size of a fetched candidate pool."""
    candidate_pool_size_histogram.observe(size)


def record_diversity_dropped(count: int) -> None:
    """Record candidates dropped by the diversity window."""
    if count:
        diversity_dropped_total.inc(count)


def record_preference_load_failure(preference: str) -> None:
    """Record a preference fetch that degraded to an empty set.

    Args:
        preference: Which preference set failed (authors, categories, tags, reading_history).
    """
    preference_load_failures_total.labels(preference=preference).inc()


def record_trending_request() -> None:
    """Record a trending request."""
    trending_requests_total.inc()


def track_api_request(method: str, endpoint: str, status_code: int, duration: float) -> None:
    """Record API request metrics.

    Args:
        method: HTTP method.
        endpoint: Request endpoint.
        status_code: Response status code.
        duration: Request duration in seconds.
    """
    api_requests_total.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
    api_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)


def set_system_info(version: str = "0.1.0", **kwargs: Any) -> None:
    """Set system information.

    Args:
        version: The application version.
        **kwargs: Additional info to include.
    """
    info = {"version": version}
    info.update({k: str(v) for k, v in kwargs.items()})
    system_info.info(info)


def traced(
    name: Optional[str] = None,
    attributes: Optional[dict] = None,
) -> Callable:
    """Decorator to add tracing to a function or coroutine function.

    Args:
        name: Span name (defaults to function name).
        attributes: Additional span attributes.

    Returns:
        Decorated function.

    Example:
        @traced("feed.trending", {"feed.kind": "trending"})
        async def get_trending_posts(limit):
            ...
    """

    def decorator(func: Callable) -> Callable:
        span_name = name or func.__name__

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                tracer = get_tracer()
                with tracer.start_as_current_span(span_name, attributes=attributes or {}):
                    return await func(*args, **kwargs)

            return async_wrapper

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = get_tracer()
            with tracer.start_as_current_span(span_name, attributes=attributes or {}):
                return func(*args, **kwargs)

        return wrapper

    return decorator


# ============================================================================
# Exports
# ============================================================================

__all__ = [
    # Prometheus metrics
    "feed_requests_total",
    "feed_request_duration_seconds",
    "candidate_pool_size_histogram",
    "diversity_dropped_total",
    "preference_load_failures_total",
    "trending_requests_total",
    "data_source_operations_total",
    "data_source_operation_duration_seconds",
    "api_requests_total",
    "api_request_duration_seconds",
    "system_info",
    # OpenTelemetry
    "get_tracer",
    # Instrumentation helpers
    "track_feed_request",
    "track_data_source_operation",
    "record_feed_outcome",
    "record_candidate_pool",
    "record_diversity_dropped",
    "record_preference_load_failure",
    "record_trending_request",
    "track_api_request",
    "set_system_info",
    "traced",
]
