"""
Observability components.

Provides request-scoped logging and operation metrics.
"""

from .logging import (
    ContextualLoggerAdapter,
    bind_request_context,
    get_logger,
    get_logging_context,
    log_operation,
)
from .metrics import (
    MetricsCollector,
    OperationMetrics,
    get_metrics_collector,
    record_operation,
    timed_operation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "OperationMetrics",
    "get_metrics_collector",
    "record_operation",
    "timed_operation",
    # Logging
    "bind_request_context",
    "get_logging_context",
    "ContextualLoggerAdapter",
    "get_logger",
    "log_operation",
]
