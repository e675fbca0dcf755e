"""
Operation metrics for MDB_PLUGIN.

Connection setup and every command helper record their duration and outcome
here. ``MongoDBPlugin.metrics()`` reads the per-command summaries back.
"""

import functools
import threading
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

T = TypeVar("T")


@dataclass
class OperationMetrics:
    """Running totals for one operation key."""

    operation_name: str
    count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    max_duration_ms: float = 0.0

    def record(self, duration_ms: float, success: bool) -> None:
        self.count += 1
        self.total_duration_ms += duration_ms
        self.max_duration_ms = max(self.max_duration_ms, duration_ms)
        if not success:
            self.error_count += 1

    def summary(self) -> dict[str, Any]:
        avg = self.total_duration_ms / self.count if self.count else 0.0
        return {
            "operation": self.operation_name,
            "count": self.count,
            "error_count": self.error_count,
            "avg_duration_ms": round(avg, 2),
            "max_duration_ms": round(self.max_duration_ms, 2),
        }


class MetricsCollector:
    """
    Thread-safe collector keyed by operation name and tags.

    A command run against ``orders`` is stored under
    ``command.findAndModify[collection=orders]``. At most ``max_metrics`` keys
    are kept; recording into a new key beyond that drops the key recorded
    into least recently.
    """

    def __init__(self, max_metrics: int = 10000):
        self._metrics: OrderedDict[str, OperationMetrics] = OrderedDict()
        self._lock = threading.Lock()
        self._max_metrics = max_metrics

    def record_operation(
        self, operation_name: str, duration_ms: float, success: bool = True, **tags: Any
    ) -> None:
        key = operation_name
        if tags:
            key += "[" + ",".join(f"{k}={v}" for k, v in sorted(tags.items())) + "]"

        with self._lock:
            metric = self._metrics.get(key)
            if metric is None:
                if len(self._metrics) >= self._max_metrics:
                    self._metrics.popitem(last=False)
                metric = self._metrics[key] = OperationMetrics(operation_name)
            else:
                self._metrics.move_to_end(key)
            metric.record(duration_ms, success)

    def snapshot(self, prefix: str | None = None) -> dict[str, dict[str, Any]]:
        """
        Summaries of the recorded keys.

        Args:
            prefix: Only include keys starting with this (e.g. "command.")
        """
        with self._lock:
            return {
                key: metric.summary()
                for key, metric in self._metrics.items()
                if prefix is None or key.startswith(prefix)
            }


_metrics_collector: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """Get or create the process-wide collector."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector


def record_operation(
    operation_name: str, duration_ms: float, success: bool = True, **tags: Any
) -> None:
    get_metrics_collector().record_operation(operation_name, duration_ms, success, **tags)


def timed_operation(operation_name: str, **tags: Any):
    """
    Decorator recording the duration and outcome of a coroutine function.

    Usage:
        @timed_operation("plugin.connect")
        async def _connect(self):
            ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            start_time = time.time()
            success = False
            try:
                result = await func(*args, **kwargs)
                success = True
                return result
            finally:
                duration_ms = (time.time() - start_time) * 1000
                record_operation(operation_name, duration_ms, success, **tags)

        return wrapper

    return decorator
