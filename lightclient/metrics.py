"""
Prometheus metrics for the light client.

Environment Variables:
    LIGHTCLIENT_METRICS_ENABLED: Start the metrics server (true/false) - default: false
    LIGHTCLIENT_METRICS_PORT: HTTP port for /metrics - default: 9184

Usage:
    from lightclient.metrics import start_metrics_server, record_applied

    start_metrics_server(enabled=True, port=9184)
    record_applied(sequence_number=42, epoch=3)

Recording helpers are no-ops until init_metrics() has run, so library code can
call them unconditionally.
"""

import logging
import os
import threading
from contextlib import contextmanager
from typing import Generator

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)

CHECKPOINTS_APPLIED: "Counter" = None  # type: ignore
CHECKPOINT_REJECTIONS: "Counter" = None  # type: ignore
FETCH_RETRIES: "Counter" = None  # type: ignore
TRUSTED_SEQUENCE: "Gauge" = None  # type: ignore
TRUSTED_EPOCH: "Gauge" = None  # type: ignore
SYNC_DURATION: "Histogram" = None  # type: ignore

_metrics_initialized = False
_metrics_lock = threading.Lock()


def init_metrics() -> None:
    """
    Create the metric objects (idempotent, thread-safe).
    """
    global CHECKPOINTS_APPLIED, CHECKPOINT_REJECTIONS, FETCH_RETRIES
    global TRUSTED_SEQUENCE, TRUSTED_EPOCH, SYNC_DURATION
    global _metrics_initialized

    with _metrics_lock:
        if _metrics_initialized:
            return

        CHECKPOINTS_APPLIED = Counter(
            "lightclient_checkpoints_applied_total",
            "Total number of checkpoints accepted into the trusted chain",
        )

        # labels: reason = VerificationError subclass name
        CHECKPOINT_REJECTIONS = Counter(
            "lightclient_checkpoint_rejections_total",
            "Total number of candidate checkpoints rejected by verification",
            labelnames=["reason"],
        )

        FETCH_RETRIES = Counter(
            "lightclient_fetch_retries_total",
            "Total number of retried checkpoint fetches",
        )

        TRUSTED_SEQUENCE = Gauge(
            "lightclient_trusted_sequence_number",
            "Sequence number of the latest trusted checkpoint",
        )

        TRUSTED_EPOCH = Gauge(
            "lightclient_trusted_epoch",
            "Epoch of the latest trusted checkpoint",
        )

        SYNC_DURATION = Histogram(
            "lightclient_sync_duration_seconds",
            "Duration of sync runs in seconds",
            buckets=(0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0),
        )

        _metrics_initialized = True
        logger.info("Prometheus metrics initialized")


def start_metrics_server(enabled: bool, port: int) -> None:
    """
    Start the Prometheus HTTP endpoint in a daemon thread.

    Args:
        enabled: Whether to start the server
        port: HTTP port for /metrics
    """
    if not enabled:
        logger.info("Metrics server disabled")
        return

    init_metrics()

    try:
        start_http_server(port, addr="0.0.0.0")
        logger.info("Metrics server started on http://0.0.0.0:%d/metrics", port)
    except OSError as e:
        logger.error("Failed to start metrics server: %s", e)


def start_metrics_server_from_env() -> None:
    enabled = os.getenv("LIGHTCLIENT_METRICS_ENABLED", "false").lower() == "true"
    port = int(os.getenv("LIGHTCLIENT_METRICS_PORT", "9184"))
    start_metrics_server(enabled=enabled, port=port)


def record_applied(sequence_number: int, epoch: int) -> None:
    if CHECKPOINTS_APPLIED is not None:
        CHECKPOINTS_APPLIED.inc()
        TRUSTED_SEQUENCE.set(sequence_number)
        TRUSTED_EPOCH.set(epoch)


def record_rejection(reason: str) -> None:
    if CHECKPOINT_REJECTIONS is not None:
        CHECKPOINT_REJECTIONS.labels(reason=reason).inc()


def record_retry() -> None:
    if FETCH_RETRIES is not None:
        FETCH_RETRIES.inc()


@contextmanager
def track_sync_duration() -> Generator[None, None, None]:
    """
    Usage:
        with track_sync_duration():
            driver.sync()
    """
    if SYNC_DURATION is None:
        yield
        return

    with SYNC_DURATION.time():
        yield
