"""Execution context for commands.

The ExecutionContext holds the flags and the loaded settings a command
works with. It is created once per CLI invocation and handed to the
lifecycle controller.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dmzctl.core.config import DEFAULT_CONFIG_PATH, Settings, load_settings
from dmzctl.core.exceptions import ConfigurationError
from dmzctl.core.output import Console, console, Verbosity


@dataclass
class ExecutionContext:
    """Execution context passed to commands.

    Attributes:
        verbosity: Output verbosity level (0-3)
        no_color: If True, disable colored output
        config_path: Path to configuration file
    """

    verbosity: int = 1
    no_color: bool = False
    config_path: Path = field(default_factory=lambda: DEFAULT_CONFIG_PATH)

    # Internal state (initialized lazily)
    _settings: Optional[Settings] = field(default=None, repr=False)
    _config_error: Optional[ConfigurationError] = field(default=None, repr=False)
    _console: Console = field(default_factory=lambda: console, repr=False)

    def __post_init__(self) -> None:
        """Configure console after initialization."""
        self._console.configure(verbosity=self.verbosity, no_color=self.no_color)

    @property
    def settings(self) -> Settings:
        """Get settings (lazy loaded, defaulted on failure)."""
        if self._settings is None:
            self._settings, self._config_error = load_settings(self.config_path)
        return self._settings

    @property
    def config_error(self) -> Optional[ConfigurationError]:
        """Error raised while loading settings, if any."""
        _ = self.settings
        return self._config_error

    @property
    def console(self) -> Console:
        """Get console for output."""
        return self._console


def create_context(
    verbose: int = 0,
    quiet: bool = False,
    no_color: bool = False,
    config: Optional[Path] = None,
) -> ExecutionContext:
    """Create an execution context from CLI options.

    Args:
        verbose: Increase verbosity (can be repeated)
        quiet: Suppress non-essential output
        no_color: Disable colored output
        config: Path to configuration file

    Returns:
        Configured execution context
    """
    if quiet:
        verbosity = Verbosity.QUIET
    else:
        verbosity = min(Verbosity.NORMAL + verbose, Verbosity.DEBUG)

    return ExecutionContext(
        verbosity=verbosity,
        no_color=no_color,
        config_path=config or DEFAULT_CONFIG_PATH,
    )
