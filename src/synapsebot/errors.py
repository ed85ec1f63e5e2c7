"""Application-level exception types for Synapse."""

from __future__ import annotations


class SynapseError(Exception):
    """Base exception for Synapse."""


class ConfigurationError(SynapseError):
    """Base exception for configuration and startup validation errors."""


class BotTokenNotConfiguredError(ConfigurationError):
    """Raised when the Telegram bot token is missing."""


class ModelNotConfiguredError(ConfigurationError):
    """Raised when model configuration is missing."""


class BackendError(SynapseError):
    """Raised when the remote generation call fails."""


class EmptyHistoryError(SynapseError):
    """Raised when a conversation has no turns yet."""


class ToolError(SynapseError):
    """Base exception for tool lookup and execution failures."""


class ToolNotFoundError(ToolError):
    """Raised when the backend asks for a tool that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool '{name}' not found")
        self.name = name


class ToolExecutionError(ToolError):
    """Raised by tool handlers for expected, user-facing failures."""


class FetchError(SynapseError):
    """Raised inside the extractor when one URL cannot be fetched."""
