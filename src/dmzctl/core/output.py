"""Console output and logging built on Rich.

Provides:
- Colored, level-tagged console messages
- Verbosity level control
- Summary panels for settings and results
- Line input for the interactive shutdown prompt
"""

from enum import IntEnum
from typing import Any

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.syntax import Syntax


class Verbosity(IntEnum):
    """Output verbosity levels."""
    QUIET = 0    # Errors only
    NORMAL = 1   # Standard output
    VERBOSE = 2  # Additional details
    DEBUG = 3    # Everything


class Console:
    """Centralized console output with Rich integration.

    Warnings and errors always go to stderr, everything else to stdout
    filtered by the configured verbosity.
    """

    def __init__(self) -> None:
        self._console = RichConsole(highlight=False)
        self._err_console = RichConsole(stderr=True, highlight=False)
        self.verbosity = Verbosity.NORMAL
        self.no_color = False

    def configure(self, verbosity: int = 1, no_color: bool = False) -> None:
        """Configure console output settings."""
        self.verbosity = Verbosity(max(Verbosity.QUIET, min(verbosity, Verbosity.DEBUG)))
        self.no_color = no_color
        if no_color:
            self._console = RichConsole(highlight=False, no_color=True)
            self._err_console = RichConsole(stderr=True, highlight=False, no_color=True)

    def info(self, message: str) -> None:
        """Print info message (green)."""
        if self.verbosity >= Verbosity.NORMAL:
            self._console.print(f"[green][INFO][/green] {message}")

    def success(self, message: str) -> None:
        """Print success message (green)."""
        if self.verbosity >= Verbosity.NORMAL:
            self._console.print(f"[green][OK][/green] {message}")

    def warn(self, message: str) -> None:
        """Print warning message (yellow) to stderr."""
        self._err_console.print(f"[yellow][WARN][/yellow] {message}")

    def error(self, message: str) -> None:
        """Print error message (red) to stderr."""
        self._err_console.print(f"[red][ERROR][/red] {message}")

    def debug(self, message: str) -> None:
        """Print debug message (cyan) - only in debug mode."""
        if self.verbosity >= Verbosity.DEBUG:
            self._console.print(f"[cyan][DEBUG][/cyan] {message}")

    def verbose(self, message: str) -> None:
        """Print verbose message (dim) - only in verbose mode."""
        if self.verbosity >= Verbosity.VERBOSE:
            self._console.print(f"[dim]{message}[/dim]")

    def step(self, message: str) -> None:
        """Print a step indicator (blue arrow)."""
        if self.verbosity >= Verbosity.NORMAL:
            self._console.print(f"[blue]->[/blue] {message}")

    def hint(self, message: str) -> None:
        """Print a helpful hint (cyan)."""
        self._console.print(f"[cyan]Hint:[/cyan] {message}")

    def print(self, message: Any = "", **kwargs: Any) -> None:
        """Print raw message or Rich renderable with formatting."""
        self._console.print(message, **kwargs)

    def json(self, json_text: str, title: str = "Configuration") -> None:
        """Print formatted JSON."""
        syntax = Syntax(json_text, "json", theme="monokai", line_numbers=False)
        self._console.print(Panel(syntax, title=title, border_style="cyan"))

    def summary(self, title: str, items: dict[str, Any]) -> None:
        """Print a summary panel with key-value pairs."""
        content_lines = []
        for key, value in items.items():
            if isinstance(value, bool):
                value_str = "[green]Yes[/green]" if value else "[red]No[/red]"
            else:
                value_str = str(value)
            content_lines.append(f"[bold]{key}:[/bold] {value_str}")

        content = "\n".join(content_lines)
        self._console.print(Panel(content, title=title, border_style="blue"))

    def input(self, prompt: str = "") -> str:
        """Read one line from the operator.

        Raises:
            EOFError: If input stream is closed
            KeyboardInterrupt: If user presses Ctrl+C
        """
        return self._console.input(prompt)


# Global console instance
console = Console()
