"""Observability utilities for logging and metrics."""

import logging
import uuid
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum

from .logging_config import setup_logger


class LogLevel(Enum):
    """Log levels for structured logging."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class LogContext:
    """Context information for structured logging."""

    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    operation: str = ""
    component: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_operation(self, operation: str) -> "LogContext":
        """Create new context with operation set."""
        return LogContext(
            correlation_id=self.correlation_id,
            operation=operation,
            component=self.component,
            metadata=self.metadata.copy(),
        )

    def with_metadata(self, **kwargs: Any) -> "LogContext":
        """Create new context with additional metadata."""
        new_metadata = self.metadata.copy()
        new_metadata.update(kwargs)
        return LogContext(
            correlation_id=self.correlation_id,
            operation=self.operation,
            component=self.component,
            metadata=new_metadata,
        )


class StructuredLogger:
    """Structured logger with context support."""

    def __init__(
        self, name: str, level: str = "INFO", format_type: str = "structured"
    ):
        self._logger = setup_logger(name, level=level, format_type=format_type)

    def _log(
        self,
        level: LogLevel,
        message: str,
        context: Optional[LogContext] = None,
        **kwargs: Any,
    ) -> None:
        """Internal logging method with context support."""
        if context:
            formatted_message = f"[{context.correlation_id}] {message}"
            if context.operation:
                formatted_message = f"[{context.operation}] {formatted_message}"

            if context.metadata or kwargs:
                metadata_str = ", ".join(
                    f"{k}={v}" for k, v in {**context.metadata, **kwargs}.items()
                )
                formatted_message = f"{formatted_message} ({metadata_str})"
        else:
            formatted_message = message

        self._logger.log(getattr(logging, level.value), formatted_message)

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs: Any):
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs: Any):
        """Log info message."""
        self._log(LogLevel.INFO, message, context, **kwargs)

    def warning(
        self, message: str, context: Optional[LogContext] = None, **kwargs: Any
    ):
        """Log warning message."""
        self._log(LogLevel.WARNING, message, context, **kwargs)

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs: Any):
        """Log error message."""
        self._log(LogLevel.ERROR, message, context, **kwargs)


@dataclass
class PerformanceMetrics:
    """Timing and outcome of a single operation."""

    operation: str
    start_time: float
    end_time: float
    success: bool
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        """Calculate operation duration in seconds."""
        return self.end_time - self.start_time

    @property
    def duration_ms(self) -> float:
        """Calculate operation duration in milliseconds."""
        return self.duration * 1000


class MetricsCollector:
    """Collector for operation metrics."""

    def __init__(self) -> None:
        self._metrics: List[PerformanceMetrics] = []

    def record_metric(self, metric: PerformanceMetrics) -> None:
        """Record a metric."""
        self._metrics.append(metric)

    def get_metrics(self, operation: Optional[str] = None) -> List[PerformanceMetrics]:
        """Get recorded metrics, optionally filtered by operation."""
        if operation:
            return [m for m in self._metrics if m.operation == operation]
        return self._metrics.copy()

    def failure_count(self, operation: Optional[str] = None) -> int:
        """Count failed operations, optionally filtered by operation."""
        return sum(1 for m in self.get_metrics(operation) if not m.success)

    def clear_metrics(self) -> None:
        """Clear all recorded metrics."""
        self._metrics.clear()
