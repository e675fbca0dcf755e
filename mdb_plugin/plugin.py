"""
FastAPI integration for MDB_PLUGIN.

Registers one MongoConnection per application and hands request handlers a
small set of helpers bound to it.

Usage:
    from fastapi import Depends, FastAPI
    from mdb_plugin import MongoDBPlugin, MongoHelpers, get_mongodb

    app = FastAPI()
    MongoDBPlugin.register(app, {"host": "localhost", "port": 27017})

    @app.post("/counters/{name}")
    async def bump(name: str, mongo: MongoHelpers = Depends(get_mongodb)):
        mongo.db("stats")
        return await mongo.find_and_modify(
            "counters", query={"_id": name}, update={"$inc": {"n": 1}}, new=True
        )

The connection is created on the first request that asks for it. The
database selected through ``db(name)`` is shared by every request; see
MongoConnection.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorCursor,
    AsyncIOMotorDatabase,
)

from .config import PluginConfig, load_config
from .constants import APP_STATE_ATTR, REQUEST_ID_HEADER
from .core.connection import MongoConnection
from .database.commands import OptionsInput
from .exceptions import ConfigurationError
from .observability import bind_request_context, get_metrics_collector, timed_operation

logger = logging.getLogger(__name__)


class MongoDBPlugin:
    """
    Holds the configuration and the lazily-created connection for one app.
    """

    def __init__(self, config: "Mapping[str, Any] | PluginConfig | None" = None) -> None:
        self.config = load_config(config)
        self._connection: MongoConnection | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def register(
        cls, app: FastAPI, config: "Mapping[str, Any] | PluginConfig | None" = None
    ) -> "MongoDBPlugin":
        """
        Attach a plugin to ``app.state``.

        Args:
            app: FastAPI application
            config: Plugin configuration; ``helper`` names the db helper
                alias, everything else is a driver option

        Returns:
            The registered plugin

        Raises:
            ConfigurationError: If the configuration mapping is invalid
        """
        plugin = cls(config)
        setattr(app.state, APP_STATE_ATTR, plugin)
        logger.info("MongoDB plugin registered (helper='%s')", plugin.config.helper)
        return plugin

    @property
    def connection(self) -> MongoConnection | None:
        """The connection, or None if no request has needed it yet."""
        return self._connection

    async def get_connection(self) -> MongoConnection:
        """
        Return the app's connection, creating and initializing it once.

        Raises:
            ConfigurationError: If the connection cannot be initialized
        """
        if self._connection is not None:
            return self._connection

        async with self._lock:
            if self._connection is None:
                self._connection = await self._connect()
        return self._connection

    @timed_operation("plugin.connect")
    async def _connect(self) -> MongoConnection:
        connection = MongoConnection(self.config)
        await connection.initialize()
        return connection

    def helpers(self, connection: MongoConnection) -> "MongoHelpers":
        return MongoHelpers(connection, helper_name=self.config.helper)

    def metrics(self, prefix: str | None = None) -> dict[str, dict[str, Any]]:
        """
        Timing and error counts recorded by connection setup and the commands.

        Keys are the operation name plus tags, e.g.
        ``command.mapreduce[collection=events]``.

        Args:
            prefix: Only include keys starting with this (e.g. "command.")
        """
        return get_metrics_collector().snapshot(prefix)

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()


class MongoHelpers:
    """
    Request-facing helpers bound to the app's connection.

    Besides ``db``, the helper named by the ``helper`` configuration key
    (e.g. ``mongo``) is available as an alias of ``db``.
    """

    def __init__(self, connection: MongoConnection, helper_name: str = "db") -> None:
        self._connection = connection
        self._helper_name = helper_name

    def __getattr__(self, name: str) -> Any:
        # Only reached for names not defined on the class
        if name == self.__dict__.get("_helper_name"):
            return self.db
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    @property
    def connection(self) -> MongoConnection:
        return self._connection

    @property
    def mongodb_connection(self) -> AsyncIOMotorClient:
        """The underlying driver client."""
        return self._connection.client

    def db(self, name: str | None = None) -> AsyncIOMotorDatabase | None:
        """Select ``name`` for every request, or return the current database."""
        return self._connection.db(name)

    def coll(self, name: str) -> AsyncIOMotorCollection | None:
        return self._connection.coll(name)

    async def find_and_modify(
        self, collection_name: str, options: OptionsInput = None, **kwargs: Any
    ) -> dict[str, Any] | None:
        """Run findAndModify; returns the raw reply (see MongoConnection)."""
        return await self._connection.find_and_modify(collection_name, options, **kwargs)

    async def map_reduce(
        self, collection_name: str, options: OptionsInput = None, **kwargs: Any
    ) -> dict[str, Any] | AsyncIOMotorCursor | None:
        """Run mapreduce; None on failure, a cursor when ``as_cursor`` is set."""
        return await self._connection.map_reduce(collection_name, options, **kwargs)


# =============================================================================
# FastAPI Dependencies
# =============================================================================


async def get_mongodb_plugin(request: Request) -> MongoDBPlugin:
    """Get the MongoDBPlugin registered on the app."""
    plugin = getattr(request.app.state, APP_STATE_ATTR, None)
    if plugin is None:
        raise HTTPException(503, "MongoDB plugin not registered")
    return plugin


async def get_mongodb(request: Request) -> MongoHelpers:
    """
    Get helpers bound to the app's MongoDB connection.

    Also binds the request's correlation ID (the ``X-Request-ID`` header, or
    a generated one), path and method to the logging context.
    """
    plugin = await get_mongodb_plugin(request)
    bind_request_context(
        request.headers.get(REQUEST_ID_HEADER),
        path=request.url.path,
        method=request.method,
    )
    try:
        connection = await plugin.get_connection()
    except ConfigurationError as e:
        logger.error("MongoDB connection unavailable: %s", e)
        raise HTTPException(503, f"MongoDB connection unavailable: {e.message}") from e

    return plugin.helpers(connection)


async def get_mongodb_connection(request: Request) -> AsyncIOMotorClient:
    """Get the raw driver client of the app's MongoDB connection."""
    helpers = await get_mongodb(request)
    return helpers.mongodb_connection
