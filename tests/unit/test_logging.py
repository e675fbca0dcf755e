"""
Unit tests for request-scoped logging.
"""

import logging

from mdb_plugin.observability.logging import (
    bind_request_context,
    get_logger,
    get_logging_context,
    log_operation,
)


class TestLoggingContext:
    """Test the bound request context."""

    def test_unbound_context(self):
        context = get_logging_context()
        assert set(context) == {"timestamp"}

    def test_supplied_correlation_id(self):
        assert bind_request_context("req-1", path="/orders", method="POST") == "req-1"

        context = get_logging_context()
        assert context["correlation_id"] == "req-1"
        assert context["path"] == "/orders"
        assert context["method"] == "POST"

    def test_generated_correlation_id(self):
        first = bind_request_context(None)
        assert first
        assert get_logging_context()["correlation_id"] == first

        second = bind_request_context("")
        assert second != first

    def test_rebinding_replaces_fields(self):
        bind_request_context("req-1", path="/orders")
        bind_request_context("req-2", method="GET")

        context = get_logging_context()
        assert context["correlation_id"] == "req-2"
        assert "path" not in context


class TestContextualLogger:
    """Test the logger adapter and log_operation."""

    def test_adapter_adds_context(self, caplog):
        bind_request_context("req-1")
        logger = get_logger("mdb_plugin.tests")

        with caplog.at_level(logging.INFO, logger="mdb_plugin.tests"):
            logger.info("selected", extra={"db_name": "shop"})

        (record,) = caplog.records
        assert record.correlation_id == "req-1"
        assert record.db_name == "shop"

    def test_log_operation_failure(self, caplog):
        bind_request_context("req-2")
        logger = logging.getLogger("mdb_plugin.tests")

        with caplog.at_level(logging.WARNING, logger="mdb_plugin.tests"):
            log_operation(
                logger,
                "command.mapreduce",
                level=logging.WARNING,
                success=False,
                duration_ms=3.456,
                collection_name="events",
            )

        (record,) = caplog.records
        assert record.getMessage() == "Operation failed: command.mapreduce (duration: 3.46ms)"
        assert record.duration_ms == 3.46
        assert record.collection_name == "events"
        assert record.correlation_id == "req-2"
