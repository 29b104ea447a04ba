"""Prometheus metrics definitions for s3-mpu.

All metrics use the ``s3mpu_`` prefix. They are only registered once
init_metrics() has been called; until then the module-level references stay
``None`` and the record helpers are no-ops, so embedding applications that
do not run Prometheus pay nothing.
"""

from __future__ import annotations

from prometheus_client import Counter

# Flag indicating whether metrics have been initialised via init_metrics().
_initialized: bool = False

parts_uploaded_total: Counter | None = None
bytes_uploaded_total: Counter | None = None

# labels: outcome ("completed" | "aborted")
sessions_total: Counter | None = None


def init_metrics() -> None:
    """Create and register all Prometheus metrics (idempotent)."""
    global _initialized
    global parts_uploaded_total, bytes_uploaded_total, sessions_total

    if _initialized:
        return

    parts_uploaded_total = Counter(
        "s3mpu_parts_uploaded_total",
        "Total multipart parts uploaded successfully",
    )

    bytes_uploaded_total = Counter(
        "s3mpu_bytes_uploaded_total",
        "Total bytes uploaded in successful parts",
    )

    sessions_total = Counter(
        "s3mpu_sessions_total",
        "Multipart upload sessions by terminal outcome",
        ["outcome"],
    )

    _initialized = True


def record_part(size: int) -> None:
    if parts_uploaded_total is not None:
        parts_uploaded_total.inc()
    if bytes_uploaded_total is not None:
        bytes_uploaded_total.inc(size)


def record_session(outcome: str) -> None:
    if sessions_total is not None:
        sessions_total.labels(outcome=outcome).inc()
