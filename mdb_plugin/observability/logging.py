"""
Request-scoped logging for MDB_PLUGIN.

``get_mongodb`` binds a correlation ID (the caller's ``X-Request-ID`` header,
or a generated one) and the request path and method. Records emitted through
``get_logger`` or ``log_operation`` while that request is served carry them.
Both live in context variables, so concurrent requests do not see each
other's values.
"""

import contextvars
import logging
import uuid
from datetime import datetime
from typing import Any

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)

_request_fields: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "request_fields", default=None
)


def bind_request_context(correlation_id: str | None = None, **fields: Any) -> str:
    """
    Bind a correlation ID and request fields to the current context.

    Args:
        correlation_id: ID supplied by the caller; a new one is generated
            when missing or empty
        **fields: Request details to attach to records (path, method, ...)

    Returns:
        The correlation ID now in effect
    """
    if not correlation_id:
        correlation_id = uuid.uuid4().hex
    _correlation_id.set(correlation_id)
    _request_fields.set(dict(fields))
    return correlation_id


def get_logging_context() -> dict[str, Any]:
    """Snapshot of the bound request context, stamped with the current time."""
    context: dict[str, Any] = {"timestamp": datetime.now().isoformat()}

    correlation_id = _correlation_id.get()
    if correlation_id:
        context["correlation_id"] = correlation_id
    context.update(_request_fields.get() or {})
    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Merges the bound request context into every record's ``extra``."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**get_logging_context(), **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    return ContextualLoggerAdapter(logging.getLogger(name), {})


def log_operation(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    level: int = logging.INFO,
    success: bool = True,
    duration_ms: float | None = None,
    **context: Any,
) -> None:
    """
    Log one completed operation with the request context attached.

    Args:
        logger: Logger instance
        operation: Operation name (e.g. "command.mapreduce")
        level: Log level
        success: Whether the operation succeeded
        duration_ms: Operation duration in milliseconds
        **context: Additional fields (db_name, collection_name, ...)
    """
    extra = get_logging_context()
    extra.update(operation=operation, success=success, **context)

    message = f"Operation: {operation}" if success else f"Operation failed: {operation}"
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)
        message += f" (duration: {duration_ms:.2f}ms)"

    logger.log(level, message, extra=extra)
