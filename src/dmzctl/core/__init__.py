"""Core framework components for dmzctl."""

from dmzctl.core.exceptions import (
    DMZError,
    ConfigurationError,
    ValidationError,
    RouterError,
    LaunchError,
    UnsupportedPlatformError,
    ServerError,
)

from dmzctl.core.context import ExecutionContext, create_context
from dmzctl.core.output import console, Console, Verbosity
from dmzctl.core.config import Settings, load_settings

__all__ = [
    # Exceptions
    "DMZError",
    "ConfigurationError",
    "ValidationError",
    "RouterError",
    "LaunchError",
    "UnsupportedPlatformError",
    "ServerError",
    # Context
    "ExecutionContext",
    "create_context",
    # Output
    "console",
    "Console",
    "Verbosity",
    # Config
    "Settings",
    "load_settings",
]
