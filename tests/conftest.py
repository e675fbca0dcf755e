"""
Pytest configuration and shared fixtures for MDB_PLUGIN tests.

This module provides:
- A mock MongoDB client whose databases record the commands they receive
- Connection fixtures (configured, initialized)
- A fresh metrics collector and logging context per test
"""

from contextvars import ContextVar
from typing import Any, Dict
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio

from mdb_plugin.core.connection import MongoConnection
from mdb_plugin.observability import logging as logging_module
from mdb_plugin.observability import metrics as metrics_module

# ============================================================================
# MOCK MONGODB FIXTURES
# ============================================================================


class MockDatabase:
    """
    Stand-in for AsyncIOMotorDatabase.

    ``command`` is an AsyncMock replying ``{"ok": 1}`` by default. Collections
    are created on first access and reused, so tests can assert on the
    ``find`` calls made against them.
    """

    def __init__(self, client: MagicMock, name: str) -> None:
        self.client = client
        self.name = name
        self.command = AsyncMock(return_value={"ok": 1})
        self.collections: Dict[str, MagicMock] = {}

    def __getitem__(self, name: str) -> MagicMock:
        if name not in self.collections:
            collection = MagicMock()
            collection.name = name
            collection.database = self
            collection.find = MagicMock(return_value=MagicMock(name=f"cursor[{self.name}.{name}]"))
            self.collections[name] = collection
        return self.collections[name]

    def sent_command(self):
        """Return the command document of the last command() call."""
        return self.command.call_args.args[0]


@pytest.fixture
def mock_mongo_client() -> MagicMock:
    """Create a mock MongoDB client; ``client["name"]`` returns a MockDatabase."""
    client = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1})

    databases: Dict[str, MockDatabase] = {}

    def get_database(name: str) -> MockDatabase:
        if name not in databases:
            databases[name] = MockDatabase(client, name)
        return databases[name]

    client.__getitem__.side_effect = get_database
    client.databases = databases
    return client


# ============================================================================
# CONNECTION FIXTURES
# ============================================================================


@pytest.fixture
def connection_config() -> Dict[str, Any]:
    """Provide default plugin configuration."""
    return {
        "host": "localhost",
        "port": 27017,
        "serverSelectionTimeoutMS": 1000,
    }


@pytest_asyncio.fixture
async def connection(
    mock_mongo_client: MagicMock, connection_config: Dict[str, Any]
) -> MongoConnection:
    """Create an initialized MongoConnection backed by the mock client."""
    with patch("mdb_plugin.core.connection.AsyncIOMotorClient", return_value=mock_mongo_client):
        conn = MongoConnection(connection_config)
        await conn.initialize()
    return conn


@pytest.fixture(autouse=True)
def fresh_observability(monkeypatch):
    """Give every test its own metrics collector and logging context."""
    monkeypatch.setattr(metrics_module, "_metrics_collector", None)
    monkeypatch.setattr(
        logging_module, "_correlation_id", ContextVar("correlation_id", default=None)
    )
    monkeypatch.setattr(
        logging_module, "_request_fields", ContextVar("request_fields", default=None)
    )
