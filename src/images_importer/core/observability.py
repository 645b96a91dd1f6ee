"""Structured logging and stage timings for import runs."""

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from .logging_config import setup_logger


@dataclass(frozen=True)
class LogContext:
    """Correlation data attached to every message about one unit of work."""

    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    operation: str = ""
    component: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_operation(self, operation: str) -> "LogContext":
        return replace(self, operation=operation, metadata=dict(self.metadata))

    def with_metadata(self, **kwargs) -> "LogContext":
        return replace(self, metadata={**self.metadata, **kwargs})


def format_message(
    message: str, context: Optional[LogContext] = None, **kwargs
) -> str:
    """Render ``[operation] [correlation_id] message (key=value, ...)``."""
    fields = dict(kwargs)
    prefix = ""
    if context is not None:
        fields = {**context.metadata, **kwargs}
        prefix = f"[{context.correlation_id}] "
        if context.operation:
            prefix = f"[{context.operation}] {prefix}"
    if fields:
        details = ", ".join(f"{k}={v}" for k, v in fields.items())
        return f"{prefix}{message} ({details})"
    return f"{prefix}{message}"


class StructuredLogger:
    """Logger that accepts a LogContext and keyword fields with each message.

    Output goes through the importer's logger hierarchy, so LOG_LEVEL and
    LOG_FORMAT apply as they do for ``get_logger``.
    """

    def __init__(self, name: str, level: int = logging.INFO):
        self._logger = setup_logger(name)
        self._logger.setLevel(level)

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, message: str, context: Optional[LogContext], **kwargs):
        if self._logger.isEnabledFor(level):
            self._logger.log(level, format_message(message, context, **kwargs))

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs):
        self._log(logging.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs):
        self._log(logging.INFO, message, context, **kwargs)

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs):
        self._log(logging.WARNING, message, context, **kwargs)

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs):
        self._log(logging.ERROR, message, context, **kwargs)


@dataclass
class StageMetric:
    """Timing of one pipeline stage (fetch, sniff or persist) for one candidate."""

    operation: str
    start_time: float
    end_time: float
    success: bool
    error_message: Optional[str] = None

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


class MetricsCollector:
    """Thread-safe collector of stage timings, shared by all workers of a run."""

    def __init__(self):
        self._metrics: List[StageMetric] = []
        self._lock = threading.Lock()

    def record(
        self,
        operation: str,
        start_time: float,
        success: bool,
        error_message: Optional[str] = None,
    ) -> StageMetric:
        """Record a stage that started at ``start_time`` and ended now."""
        metric = StageMetric(
            operation=operation,
            start_time=start_time,
            end_time=time.time(),
            success=success,
            error_message=error_message,
        )
        with self._lock:
            self._metrics.append(metric)
        return metric

    def get_metrics(self, operation: Optional[str] = None) -> List[StageMetric]:
        with self._lock:
            metrics = list(self._metrics)
        if operation:
            return [m for m in metrics if m.operation == operation]
        return metrics

    def get_summary(self, operation: Optional[str] = None) -> Dict[str, Any]:
        """Aggregate counts and durations, or an empty dict if nothing was recorded."""
        metrics = self.get_metrics(operation)
        if not metrics:
            return {}

        durations = [m.duration for m in metrics]
        succeeded = sum(1 for m in metrics if m.success)
        return {
            "total_operations": len(metrics),
            "successful_operations": succeeded,
            "failed_operations": len(metrics) - succeeded,
            "success_rate": succeeded / len(metrics),
            "avg_duration": sum(durations) / len(durations),
            "max_duration": max(durations),
            "total_duration": sum(durations),
        }


def log_operation_start(operation: str, logger, context: Optional[LogContext] = None, **metadata) -> LogContext:
    """Log the start of ``operation`` and return the context to finish it with."""
    operation_context = (context or LogContext()).with_operation(operation)
    if metadata:
        operation_context = operation_context.with_metadata(**metadata)
    logger.info(f"Starting {operation}", operation_context)
    return operation_context


def log_operation_end(
    operation: str,
    logger,
    context: LogContext,
    success: bool = True,
    error_message: Optional[str] = None,
    **metadata,
) -> None:
    if metadata:
        context = context.with_metadata(**metadata)
    if success:
        logger.info(f"Completed {operation}", context)
    else:
        logger.error(f"Failed {operation}: {error_message}", context)
