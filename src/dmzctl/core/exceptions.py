"""Custom exceptions for dmzctl.

All exceptions provide:
- Clear error messages
- Optional hints for resolution
- Optional details for debugging
- Exit codes for proper shell integration
"""

from typing import Optional


class DMZError(Exception):
    """Base exception for all dmzctl errors.

    Attributes:
        message: Human-readable error description
        hint: Suggested action to resolve the error
        details: Additional context for debugging
        exit_code: Shell exit code (1-127)
    """

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        *,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or []

    def __str__(self) -> str:
        return self.message


class ConfigurationError(DMZError):
    """Configuration file errors.

    Raised when:
    - Config file not found or unreadable
    - Invalid JSON syntax
    - Invalid configuration values
    """
    exit_code = 2


class ValidationError(DMZError):
    """Input validation errors.

    Raised when:
    - DMZ enable flag is not "0" or "1"
    - Port number out of range
    """
    exit_code = 3


class RouterError(DMZError):
    """Router management API errors.

    Raised when:
    - Router is unreachable
    - Router answers with a non-200 status
    """
    exit_code = 4

    def __init__(
        self,
        message: str,
        *,
        response_text: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        if not details:
            details = []
        if response_text:
            details.append(f"Router response: {response_text}")
        super().__init__(message, hint=hint, details=details)
        self.response_text = response_text


class LaunchError(DMZError):
    """Browser subprocess launch failures."""
    exit_code = 5


class UnsupportedPlatformError(LaunchError):
    """No browser launcher exists for the running operating system."""
    exit_code = 6

    def __init__(
        self,
        platform: str,
        *,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(f"不支持的操作系统: {platform}", hint=hint)
        self.platform = platform


class ServerError(DMZError):
    """Local form server errors.

    Raised when:
    - The listen port is already in use
    - The listen address cannot be bound
    """
    exit_code = 7
