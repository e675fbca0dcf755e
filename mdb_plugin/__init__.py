"""
MDB_PLUGIN - MongoDB plugin for FastAPI

Shares one MongoDB connection across request handlers, remembers the
database a handler selected, and runs findAndModify and mapreduce as ordered
command documents.
"""

# Core connection
from .core import MongoConnection
# Configuration
from .config import PluginConfig, load_config
# Errors
from .exceptions import (
    CommandError,
    ConfigurationError,
    MongoDBPluginError,
    NotInitializedError,
)
# FastAPI integration
from .plugin import (
    MongoDBPlugin,
    MongoHelpers,
    get_mongodb,
    get_mongodb_connection,
    get_mongodb_plugin,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "MongoConnection",
    # Config
    "PluginConfig",
    "load_config",
    # Errors
    "MongoDBPluginError",
    "ConfigurationError",
    "NotInitializedError",
    "CommandError",
    # FastAPI
    "MongoDBPlugin",
    "MongoHelpers",
    "get_mongodb",
    "get_mongodb_connection",
    "get_mongodb_plugin",
]
