"""
Configuration management for MDB_PLUGIN.

The plugin owns a single option, ``helper``, naming the database-selection
helper handed to request handlers. Every other key is a MongoDB connection
option and is forwarded verbatim, in the order given, to the driver client.

Example:
    config = load_config({"host": "localhost", "port": 27017, "helper": "mongo"})
    config.helper                  # "mongo"
    config.connection_options()    # {"host": "localhost", "port": 27017}
"""

import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .constants import (
    DEFAULT_HELPER_NAME,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
    HELPER_CONFIG_KEY,
)
from .exceptions import ConfigurationError


class PluginConfig(BaseModel):
    """
    Plugin configuration.

    Unknown keys are accepted and kept as driver options; nothing about them
    is validated locally.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    helper: str = DEFAULT_HELPER_NAME

    @field_validator("helper")
    @classmethod
    def _helper_is_identifier(cls, value: str) -> str:
        if not value.isidentifier():
            raise ValueError(f"helper must be a valid identifier, got {value!r}")
        return value

    def connection_options(self) -> dict[str, Any]:
        """Return the driver options, in the order they were supplied."""
        return dict(self.model_extra or {})

    @classmethod
    def from_env(cls) -> "PluginConfig":
        """
        Build configuration from environment variables.

        Reads:
            MONGO_URI: connection string, passed to the driver as ``host``
            MONGO_HELPER_NAME: helper name (defaults to "db")
            MONGO_SERVER_SELECTION_TIMEOUT_MS: server selection timeout

        Raises:
            ConfigurationError: If a value is invalid
        """
        options: dict[str, Any] = {}
        mongo_uri = os.getenv("MONGO_URI", "")
        if mongo_uri:
            options["host"] = mongo_uri

        timeout = os.getenv(
            "MONGO_SERVER_SELECTION_TIMEOUT_MS", str(DEFAULT_SERVER_SELECTION_TIMEOUT_MS)
        )
        try:
            options["serverSelectionTimeoutMS"] = int(timeout)
        except ValueError as e:
            raise ConfigurationError(
                "MONGO_SERVER_SELECTION_TIMEOUT_MS must be an integer",
                config_key="MONGO_SERVER_SELECTION_TIMEOUT_MS",
                config_value=timeout,
            ) from e

        options[HELPER_CONFIG_KEY] = os.getenv("MONGO_HELPER_NAME", DEFAULT_HELPER_NAME)
        return load_config(options)


def load_config(config: "Mapping[str, Any] | PluginConfig | None" = None) -> PluginConfig:
    """
    Validate a configuration mapping.

    Args:
        config: Mapping of options, an existing PluginConfig, or None for
            an empty configuration

    Returns:
        Validated PluginConfig

    Raises:
        ConfigurationError: If the mapping is not valid
    """
    if isinstance(config, PluginConfig):
        return config
    if config is None:
        config = {}
    if not isinstance(config, Mapping):
        raise ConfigurationError(
            f"Configuration must be a mapping, got {type(config).__name__}",
            config_value=type(config).__name__,
        )

    try:
        return PluginConfig(**config)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ConfigurationError(
            f"Invalid plugin configuration: {first.get('msg')}",
            config_key=key,
            config_value=first.get("input"),
        ) from e
    except TypeError as e:
        # Non-string keys cannot be passed as keyword arguments
        raise ConfigurationError(f"Invalid plugin configuration: {e}") from e
