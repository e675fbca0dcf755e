"""
Connection state and database selection for MDB_PLUGIN.

A MongoConnection owns one driver client for the lifetime of the process and
remembers a "current" database name. Request handlers select a database once
with ``db(name)`` and later helpers (``coll``, ``find_and_modify``,
``map_reduce``) operate on whatever database was selected last.

The current database name is shared, unsynchronized state: every caller
holding the connection sees the last selection made by any caller.

This module is part of MDB_PLUGIN - MongoDB plugin.
"""

import logging
import time
from collections.abc import Mapping
from typing import Any

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorCursor,
    AsyncIOMotorDatabase,
)
from pymongo.errors import ConfigurationError as DriverConfigurationError
from pymongo.errors import (
    ConnectionFailure,
    OperationFailure,
    PyMongoError,
    ServerSelectionTimeoutError,
)

from ..config import PluginConfig, load_config
from ..constants import (
    COMMAND_OK,
    FIND_AND_MODIFY_COMMAND,
    MAP_REDUCE_COMMAND,
    MAP_REDUCE_OUTPUT_FIELD,
    PING_COMMAND,
)
from ..database.commands import (
    OptionsInput,
    build_command,
    normalize_options,
    pop_as_cursor,
)
from ..exceptions import ConfigurationError, NotInitializedError
from ..observability import get_logger as get_contextual_logger
from ..observability import log_operation, record_operation

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)


class MongoConnection:
    """
    Process-wide MongoDB connection with a shared current-database selection.

    Example:
        conn = MongoConnection({"host": "localhost", "port": 27017})
        await conn.initialize()

        conn.db("shop")                      # select
        orders = conn.coll("orders")         # collection in "shop"
        reply = await conn.find_and_modify(
            "orders", query={"_id": 1}, update={"$inc": {"n": 1}}, new=True
        )
    """

    def __init__(self, config: "Mapping[str, Any] | PluginConfig | None" = None) -> None:
        """
        Args:
            config: Connection options, forwarded verbatim to the driver
                (apart from the plugin's ``helper`` key)

        Raises:
            ConfigurationError: If the configuration mapping is invalid
        """
        self.config = load_config(config)
        self.current_db: str | None = None

        self._client: AsyncIOMotorClient | None = None
        self._initialized: bool = False

    async def initialize(self) -> None:
        """
        Create the driver client and verify the server is reachable.

        Runs once; later calls log a warning and return.

        Raises:
            ConfigurationError: If the options are rejected by the driver or
                the server cannot be reached
        """
        if self._initialized:
            logger.warning("MongoConnection already initialized. Skipping re-initialization.")
            return

        start_time = time.time()
        options = self.config.connection_options()
        contextual_logger.info(
            "Initializing MongoDB connection",
            extra={"option_keys": sorted(options)},
        )

        try:
            client = AsyncIOMotorClient(**options)
        except (DriverConfigurationError, TypeError, ValueError) as e:
            self._record_init_failure(start_time, e)
            raise ConfigurationError(
                f"Invalid MongoDB connection options: {e}",
                context={"error_type": type(e).__name__},
            ) from e

        try:
            await client.admin.command(PING_COMMAND)
        except (ConnectionFailure, ServerSelectionTimeoutError, OperationFailure) as e:
            client.close()
            self._record_init_failure(start_time, e)
            raise ConfigurationError(
                f"Failed to connect to MongoDB: {e}",
                context={"error_type": type(e).__name__},
            ) from e

        self._client = client
        self._initialized = True

        duration_ms = (time.time() - start_time) * 1000
        record_operation("connection.initialize", duration_ms, success=True)
        contextual_logger.info(
            "MongoDB connection initialized successfully",
            extra={"duration_ms": round(duration_ms, 2)},
        )

    def _record_init_failure(self, start_time: float, error: Exception) -> None:
        duration_ms = (time.time() - start_time) * 1000
        record_operation("connection.initialize", duration_ms, success=False)
        contextual_logger.critical(
            "MongoDB connection failed",
            extra={
                "error_type": type(error).__name__,
                "error": str(error),
                "duration_ms": round(duration_ms, 2),
            },
        )

    @property
    def client(self) -> AsyncIOMotorClient:
        """
        Get the driver client.

        Raises:
            NotInitializedError: If initialize() has not completed
        """
        if not self._initialized:
            raise NotInitializedError(
                "MongoConnection not initialized. Call initialize() first."
            )
        return self._client

    @property
    def initialized(self) -> bool:
        return self._initialized

    def close(self) -> None:
        """Close the driver client. Safe to call when never initialized."""
        if self._client is not None:
            self._client.close()
            contextual_logger.info("MongoDB connection closed.")

    # ------------------------------------------------------------------
    # Database selection
    # ------------------------------------------------------------------

    def db(self, name: str | None = None) -> AsyncIOMotorDatabase | None:
        """
        Select or reuse the current database.

        With a name, the name becomes the current database for every caller
        (last write wins). Without one, the previously selected database is
        returned.

        Args:
            name: Database to select; omitted or empty reuses the current one

        Returns:
            Database handle, or None if no database has ever been selected
        """
        if not name and not self.current_db:
            return None

        client = self.client
        if name:
            if self.current_db is not None and self.current_db != name:
                logger.debug("Switching current database from '%s' to '%s'", self.current_db, name)
            self.current_db = name
        return client[self.current_db]

    def coll(self, name: str) -> AsyncIOMotorCollection | None:
        """
        Get a collection in the current database.

        Returns:
            Collection handle, or None if no database has been selected
        """
        database = self.db()
        if database is None:
            return None
        return database[name]

    # ------------------------------------------------------------------
    # Command helpers
    # ------------------------------------------------------------------

    async def find_and_modify(
        self, collection_name: str, options: OptionsInput = None, **kwargs: Any
    ) -> dict[str, Any] | None:
        """
        Run ``findAndModify`` on the current database.

        ``query``, ``update`` and all other options are sent as given, after
        the command key. The server reply is returned unmodified, including
        a failed reply; callers inspect ``ok``/``errmsg`` themselves.

        Args:
            collection_name: Target collection
            options: Mapping or (key, value) pairs
            **kwargs: Further options, appended after ``options``

        Returns:
            Raw command reply, or None if no database has been selected

        Raises:
            CommandError: If the options cannot form a command document
        """
        pairs = normalize_options(options, kwargs, command_name=FIND_AND_MODIFY_COMMAND)
        cmd = build_command(FIND_AND_MODIFY_COMMAND, collection_name, pairs)

        database = self.db()
        if database is None:
            logger.debug("findAndModify on '%s' skipped: no database selected", collection_name)
            return None

        return await self._run_command(database, cmd, FIND_AND_MODIFY_COMMAND, collection_name)

    async def map_reduce(
        self, collection_name: str, options: OptionsInput = None, **kwargs: Any
    ) -> dict[str, Any] | AsyncIOMotorCursor | None:
        """
        Run ``mapreduce`` on the current database.

        The ``as_cursor`` option (also accepted as ``asCursor``) is consumed
        here and never sent to the server. When it is set and the command
        succeeds, a cursor over the output collection is returned instead of
        the reply.

        Args:
            collection_name: Source collection
            options: Mapping or (key, value) pairs (map, reduce, out, ...)
            **kwargs: Further options, appended after ``options``

        Returns:
            Raw reply, a cursor over the output collection, or None when the
            command failed or no database has been selected

        Raises:
            CommandError: If the options cannot form a command document
        """
        pairs = normalize_options(options, kwargs, command_name=MAP_REDUCE_COMMAND)
        as_cursor, pairs = pop_as_cursor(pairs)
        cmd = build_command(MAP_REDUCE_COMMAND, collection_name, pairs)

        database = self.db()
        if database is None:
            logger.debug("mapreduce on '%s' skipped: no database selected", collection_name)
            return None

        try:
            result = await self._run_command(database, cmd, MAP_REDUCE_COMMAND, collection_name)
        except OperationFailure as e:
            logger.warning(
                "mapreduce on '%s' failed: %s (code=%s)", collection_name, e, e.code
            )
            return None

        if result.get("ok") != COMMAND_OK:
            logger.warning(
                "mapreduce on '%s' failed: %s (code=%s)",
                collection_name,
                result.get("errmsg"),
                result.get("code"),
            )
            return None

        if not as_cursor:
            return result
        return self._output_cursor(result)

    def _output_cursor(self, result: dict[str, Any]) -> dict[str, Any] | AsyncIOMotorCursor:
        """Open an unfiltered cursor on the collection a map-reduce wrote to."""
        output = result.get(MAP_REDUCE_OUTPUT_FIELD)

        if isinstance(output, str) and output:
            return self.coll(output).find()

        if isinstance(output, Mapping) and output.get("collection"):
            target_db = output.get("db")
            if target_db:
                return self.client[target_db][output["collection"]].find()
            return self.coll(output["collection"]).find()

        # Inline output: there is no collection to scan
        logger.debug("mapreduce reply names no output collection; returning reply")
        return result

    async def _run_command(
        self,
        database: AsyncIOMotorDatabase,
        cmd: Any,
        command_name: str,
        collection_name: str,
    ) -> dict[str, Any]:
        start_time = time.time()
        try:
            result = await database.command(cmd, check=False)
        except PyMongoError:
            duration_ms = (time.time() - start_time) * 1000
            record_operation(
                f"command.{command_name}", duration_ms, success=False, collection=collection_name
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        success = result.get("ok") == COMMAND_OK
        record_operation(
            f"command.{command_name}", duration_ms, success=success, collection=collection_name
        )
        log_operation(
            logger,
            f"command.{command_name}",
            level=logging.DEBUG,
            success=success,
            duration_ms=duration_ms,
            db_name=database.name,
            collection_name=collection_name,
        )
        return result
