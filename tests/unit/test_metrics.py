"""
Unit tests for MetricsCollector.

Tests metrics collection functionality including:
- Thread-safety under concurrent access
- Bounded storage with least-recently-recorded eviction
- The timed_operation decorator
"""

import threading

import pytest

from mdb_plugin.observability.metrics import (
    MetricsCollector,
    get_metrics_collector,
    record_operation,
    timed_operation,
)


class TestMetricsCollectorThreadSafety:
    """Test thread-safety of metrics collection."""

    def test_concurrent_record_operation(self):
        collector = MetricsCollector()
        num_threads = 10
        operations_per_thread = 100
        barrier = threading.Barrier(num_threads)

        def record_operations(thread_id: int):
            barrier.wait()
            for i in range(operations_per_thread):
                collector.record_operation(
                    "command.mapreduce",
                    duration_ms=10.0 + i,
                    collection=f"events_{thread_id}",
                )

        threads = [
            threading.Thread(target=record_operations, args=(i,)) for i in range(num_threads)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        snapshot = collector.snapshot()
        assert len(snapshot) == num_threads
        assert all(entry["count"] == operations_per_thread for entry in snapshot.values())


class TestMetricsCollectorBoundedStorage:
    """Test bounded storage and eviction."""

    def test_max_metrics_limit(self):
        collector = MetricsCollector(max_metrics=5)

        for i in range(8):
            collector.record_operation(f"test.op_{i}", duration_ms=10.0)

        assert len(collector.snapshot()) == 5

    def test_evicts_least_recently_recorded(self):
        collector = MetricsCollector(max_metrics=3)
        collector.record_operation("test.op_0", duration_ms=10.0)
        collector.record_operation("test.op_1", duration_ms=10.0)
        collector.record_operation("test.op_2", duration_ms=10.0)

        # Recording into op_0 again makes op_1 the oldest key
        collector.record_operation("test.op_0", duration_ms=10.0)
        collector.record_operation("test.op_3", duration_ms=10.0)

        assert set(collector.snapshot()) == {"test.op_0", "test.op_2", "test.op_3"}


class TestSummaries:
    """Test aggregated values."""

    def test_tagged_key_and_values(self):
        collector = MetricsCollector()
        collector.record_operation("command.findAndModify", 10.0, collection="orders")
        collector.record_operation("command.findAndModify", 30.0, False, collection="orders")

        entry = collector.snapshot()["command.findAndModify[collection=orders]"]
        assert entry == {
            "operation": "command.findAndModify",
            "count": 2,
            "error_count": 1,
            "avg_duration_ms": 20.0,
            "max_duration_ms": 30.0,
        }

    def test_snapshot_prefix(self):
        collector = MetricsCollector()
        collector.record_operation("connection.initialize", 5.0)
        collector.record_operation("command.mapreduce", 5.0, collection="events")

        assert list(collector.snapshot("command.")) == ["command.mapreduce[collection=events]"]

    def test_global_collector(self):
        record_operation("connection.initialize", 5.0)
        assert get_metrics_collector().snapshot()["connection.initialize"]["count"] == 1


class TestTimedOperation:
    """Test the timed_operation decorator."""

    @pytest.mark.asyncio
    async def test_success(self):
        @timed_operation("test.async")
        async def work():
            return 42

        assert await work() == 42
        entry = get_metrics_collector().snapshot()["test.async"]
        assert entry["count"] == 1
        assert entry["error_count"] == 0

    @pytest.mark.asyncio
    async def test_failure(self):
        @timed_operation("test.async", collection="events")
        async def work():
            raise ValueError("boom")

        with pytest.raises(ValueError):
            await work()

        entry = get_metrics_collector().snapshot()["test.async[collection=events]"]
        assert entry["error_count"] == 1
