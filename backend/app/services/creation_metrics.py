"""Timing metrics for a single create-book operation.

One ``creation_completed`` record is logged per create call, whether it
succeeded or failed, so durations can be aggregated from the JSON logs.
"""

import logging
import time
from dataclasses import asdict, dataclass, field

from bookstore_catalog.events import LogEvent


@dataclass
class CreationMetrics:
    operation_id: str
    title: str
    isbn: str
    category: str
    started_at: float = field(default_factory=time.monotonic)
    validation_ms: float = 0.0
    persistence_ms: float = 0.0
    total_ms: float = 0.0
    success: bool = False
    error_reason: str | None = None

    def finish(self, *, success: bool, error_reason: str | None = None) -> None:
        self.total_ms = round((time.monotonic() - self.started_at) * 1000, 2)
        self.success = success
        self.error_reason = error_reason


def elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 2)


def log_creation_metrics(logger: logging.Logger, metrics: CreationMetrics) -> None:
    fields = asdict(metrics)
    fields.pop("started_at")
    level = logging.INFO if metrics.success else logging.WARNING
    logger.log(
        level,
        "Book creation %s in %.2fms (operation %s)",
        "succeeded" if metrics.success else "failed",
        metrics.total_ms,
        metrics.operation_id,
        extra={"event": LogEvent.CREATION_COMPLETED, **fields},
    )
