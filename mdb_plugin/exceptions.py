"""
Custom exceptions for MDB_PLUGIN.

These exceptions provide more specific error types while maintaining
backward compatibility with RuntimeError.
"""

from typing import Any, Dict, Optional


class MongoDBPluginError(RuntimeError):
    """
    Base exception for MongoDB plugin errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (db_name,
                 collection_name, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            context: Optional dictionary with additional context information
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class ConfigurationError(MongoDBPluginError):
    """
    Raised when the connection cannot be configured.

    Covers both invalid connection options and a server that cannot be
    reached while the connection is being initialized.

    Attributes:
        message: Error message
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the configuration error.

        Args:
            message: Error message
            config_key: Configuration key that caused the error (if available)
            config_value: Configuration value that caused the error (if available)
            context: Additional context information
        """
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value


class NotInitializedError(MongoDBPluginError):
    """Raised when the driver client is requested before initialize()."""


class CommandError(MongoDBPluginError):
    """
    Raised when a command document cannot be built from the given options.

    Attributes:
        message: Error message
        command_name: Command being built (findAndModify, mapreduce)
        collection_name: Target collection (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        command_name: Optional[str] = None,
        collection_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if command_name:
            context["command_name"] = command_name
        if collection_name:
            context["collection_name"] = collection_name
        super().__init__(message, context=context)
        self.command_name = command_name
        self.collection_name = collection_name
