"""Optional Prometheus/OpenTelemetry instrumentation and Sentry setup.

Every helper is a no-op when the matching library is not installed.
"""

from __future__ import annotations

import os
import time
from contextlib import contextmanager
from typing import Any, Iterator, cast

try:
    from prometheus_client import Counter, Histogram  # type: ignore
except Exception:  # pragma: no cover
    Counter = None  # type: ignore
    Histogram = None  # type: ignore

try:
    from opentelemetry import trace  # type: ignore
except Exception:  # pragma: no cover
    trace = None  # type: ignore


def _counter(name: str, doc: str, labels: list[str]) -> Any | None:
    return cast(Any, Counter(name, doc, labels)) if Counter else None


GITHUB_CALLS = _counter("langpulse_github_requests_total", "GitHub API calls by operation", ["op", "outcome"])
RATE_LIMITS = _counter("langpulse_github_rate_limited_total", "Rate-limited GitHub responses", ["status"])
GITHUB_LATENCY: Any | None = (
    cast(Any, Histogram("langpulse_github_request_seconds", "GitHub API call duration", ["op"]))
    if Histogram
    else None
)


def _span(op: str) -> Any:
    return cast(Any, trace).get_tracer("langpulse").start_as_current_span(op)


@contextmanager
def record(op: str) -> Iterator[None]:
    """Time a GitHub call and count it as ``ok`` or ``error``."""
    started = time.perf_counter()
    outcome = "error"
    try:
        if trace is None:
            yield
        else:
            with _span(op):
                yield
        outcome = "ok"
    finally:
        if GITHUB_CALLS:
            GITHUB_CALLS.labels(op=op, outcome=outcome).inc()
        if GITHUB_LATENCY:
            GITHUB_LATENCY.labels(op=op).observe(time.perf_counter() - started)


def count_rate_limit(status: int) -> None:
    if RATE_LIMITS:
        RATE_LIMITS.labels(status=str(status)).inc()


def init_sentry_from_env() -> bool:
    """Initialise Sentry when SENTRY_DSN is set; return whether it was."""
    dsn = os.getenv("SENTRY_DSN")
    if not dsn:
        return False
    import sentry_sdk

    sentry_sdk.init(
        dsn=dsn,
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.0")),
        release=f"langpulse@{os.getenv('LANGPULSE_RELEASE', '0.1.0')}",
    )
    return True
