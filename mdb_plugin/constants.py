"""
Constants for MDB_PLUGIN.

This module contains all shared constants used across the codebase to avoid
magic numbers and improve maintainability.
"""

from typing import Final

# ============================================================================
# PLUGIN CONSTANTS
# ============================================================================

DEFAULT_HELPER_NAME: Final[str] = "db"
"""Default name of the database-selection helper exposed to request handlers."""

HELPER_CONFIG_KEY: Final[str] = "helper"
"""Configuration key holding the helper name; never forwarded to the driver."""

APP_STATE_ATTR: Final[str] = "mongodb"
"""Attribute on ``app.state`` holding the registered plugin."""

# ============================================================================
# COMMAND CONSTANTS
# ============================================================================

FIND_AND_MODIFY_COMMAND: Final[str] = "findAndModify"
"""Command name for atomic find-and-modify."""

MAP_REDUCE_COMMAND: Final[str] = "mapreduce"
"""Command name for map-reduce."""

AS_CURSOR_OPTIONS: Final[tuple[str, ...]] = ("as_cursor", "asCursor")
"""Option keys requesting a cursor over the map-reduce output collection."""

COMMAND_OK: Final[int] = 1
"""Value of the ``ok`` field in a successful command reply."""

MAP_REDUCE_OUTPUT_FIELD: Final[str] = "result"
"""Field of a map-reduce reply naming the output collection."""

# ============================================================================
# CONNECTION CONSTANTS
# ============================================================================

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Server selection timeout used when reading configuration from the environment."""

PING_COMMAND: Final[str] = "ping"
"""Command used to verify the server is reachable during initialization."""

# ============================================================================
# REQUEST CONSTANTS
# ============================================================================

REQUEST_ID_HEADER: Final[str] = "X-Request-ID"
"""Request header whose value becomes the correlation ID of log records."""
