"""
Prometheus metrics collection and textfile exposition.

notecast runs as a one-shot command, so there is nothing for Prometheus to
scrape. Metrics are collected on a dedicated registry and, when
``metrics.enabled`` is set, written once at exit in the text exposition
format for the node_exporter textfile collector.

Architecture:
    RELAY_PUBLISH_TOTAL:        Per-relay publish outcomes (success/failure).
    UPLOAD_TOTAL:               Blob upload outcomes (success/failure).
    FETCH_RESULT_TOTAL:         Fetch query resolutions by query and reason.
    OPERATION_DURATION_SECONDS: Histogram of publish/profile durations.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Histogram, write_to_textfile
from pydantic import BaseModel, Field, model_validator


if TYPE_CHECKING:
    from collections.abc import Iterator

    from notecast.models.outcome import BatchUploadResult, BroadcastReport, FetchResult


logger = logging.getLogger("core.metrics")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MetricsConfig(BaseModel):
    """Configuration for textfile metrics exposition.

    ``textfile`` is required when ``enabled`` is True. The file is replaced
    atomically, so a collector never reads a partial write.
    """

    enabled: bool = Field(default=False, description="Write metrics at exit")
    textfile: str | None = Field(default=None, description="Output .prom file path")

    @model_validator(mode="after")
    def _require_textfile(self) -> MetricsConfig:
        if self.enabled and not self.textfile:
            raise ValueError("metrics.textfile is required when metrics.enabled is true")
        return self


# ---------------------------------------------------------------------------
# Metric objects
# ---------------------------------------------------------------------------

REGISTRY = CollectorRegistry()

RELAY_PUBLISH_TOTAL = Counter(
    "notecast_relay_publish",
    "Relay publish attempts by result",
    ["result"],
    registry=REGISTRY,
)

UPLOAD_TOTAL = Counter(
    "notecast_upload",
    "Blob uploads by result",
    ["result"],
    registry=REGISTRY,
)

FETCH_RESULT_TOTAL = Counter(
    "notecast_fetch_result",
    "Fetch query resolutions by query name and result",
    ["query", "result"],
    registry=REGISTRY,
)

OPERATION_DURATION_SECONDS = Histogram(
    "notecast_operation_duration_seconds",
    "Duration of top-level operations in seconds",
    ["operation"],
    buckets=(0.5, 1, 2, 5, 10, 20, 30, 60, 120),
    registry=REGISTRY,
)


# ---------------------------------------------------------------------------
# Recording helpers
# ---------------------------------------------------------------------------


def record_broadcast(report: BroadcastReport) -> None:
    """Count every per-relay outcome of a broadcast."""
    for outcome in report.outcomes:
        RELAY_PUBLISH_TOTAL.labels(result="success" if outcome.success else "failure").inc()


def record_uploads(batch: BatchUploadResult) -> None:
    """Count every per-item result of a batch upload."""
    for result in batch.results:
        UPLOAD_TOTAL.labels(result="success" if result.success else "failure").inc()


def record_fetch(query: str, result: FetchResult) -> None:
    """Count one fetch query resolution (``found`` or the not-found reason)."""
    label = "found" if result.found else str(result.reason)  # type: ignore[union-attr]
    FETCH_RESULT_TOTAL.labels(query=query, result=label).inc()


@contextmanager
def track_duration(operation: str) -> Iterator[None]:
    """Observe the wall-clock duration of the enclosed block."""
    start = time.monotonic()
    try:
        yield
    finally:
        OPERATION_DURATION_SECONDS.labels(operation=operation).observe(time.monotonic() - start)


def write_metrics(config: MetricsConfig, registry: CollectorRegistry = REGISTRY) -> bool:
    """Write the registry to the configured textfile.

    Returns:
        ``True`` if the file was written, ``False`` when metrics are
        disabled or the write failed (logged, never raised).
    """
    if not config.enabled or not config.textfile:
        return False
    try:
        write_to_textfile(config.textfile, registry)
    except OSError as e:
        logger.warning("metrics_write_failed path=%s error=%s", config.textfile, e)
        return False
    logger.debug("metrics_written path=%s", config.textfile)
    return True
