"""Main CLI entry point using Typer.

This module defines the root CLI application and its commands.
"""

from pathlib import Path
from typing import Optional, Annotated

import typer
from rich.console import Console

from dmzctl import __version__
from dmzctl.core.context import ExecutionContext, create_context
from dmzctl.core.output import console as app_console
from dmzctl.core.config import (
    DEFAULT_CONFIG_PATH,
    Settings,
    get_example_config,
    init_config,
)
from dmzctl.core.exceptions import DMZError
from dmzctl.core.validation import validate_port
from dmzctl.lifecycle import LifecycleController
from dmzctl.services.router import RouterClient, build_url


# Create the main Typer app
app = typer.Typer(
    name="dmzctl",
    help="DMZ Control - set router DMZ and IPv6 firewall from a local web form.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
)

config_app = typer.Typer(
    name="config",
    help="Configuration management.",
    no_args_is_help=True,
)

app.add_typer(config_app, name="config")


# Type aliases for common options
VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase output verbosity. Can be repeated (-v, -vv).",
    ),
]

QuietOption = Annotated[
    bool,
    typer.Option(
        "--quiet",
        "-q",
        help="Suppress non-essential output. Only show errors.",
        is_flag=True,
    ),
]

NoColorOption = Annotated[
    bool,
    typer.Option(
        "--no-color",
        help="Disable colored output.",
        is_flag=True,
    ),
]

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help=f"Path to configuration file. Default: {DEFAULT_CONFIG_PATH}",
        exists=False,
        file_okay=True,
        dir_okay=False,
    ),
]

ForceOption = Annotated[
    bool,
    typer.Option(
        "--force",
        "-f",
        help="Overwrite an existing file.",
        is_flag=True,
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console = Console()
        console.print(f"dmzctl version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """DMZ Control - local helper for router DMZ settings.

    Serves a form on localhost, opens it in the default browser and relays
    the submitted DMZ / IPv6 firewall settings to the router.

    [bold]Examples:[/bold]
        dmzctl run
        dmzctl run --port 8081 --no-browser
        dmzctl apply -c config.json
        dmzctl config init
    """
    pass


def get_context(
    verbose: int = 0,
    quiet: bool = False,
    no_color: bool = False,
    config: Optional[Path] = None,
) -> ExecutionContext:
    """Create execution context from CLI options."""
    return create_context(
        verbose=verbose,
        quiet=quiet,
        no_color=no_color,
        config=config,
    )


def handle_error(error: DMZError) -> None:
    """Handle a DMZError by printing formatted error and exiting."""
    app_console.error(error.message)

    if error.details:
        for detail in error.details:
            app_console.print(f"  [dim]{detail}[/dim]")

    if error.hint:
        app_console.hint(error.hint)

    raise typer.Exit(error.exit_code)


@app.command("run")
def run_cmd(
    config: ConfigOption = None,
    port: Annotated[
        Optional[str],
        typer.Option("--port", "-p", help="Listen port (overrides server_port)."),
    ] = None,
    no_browser: Annotated[
        bool,
        typer.Option("--no-browser", help="Do not open the browser automatically.", is_flag=True),
    ] = False,
    verbose: VerboseOption = 0,
    quiet: QuietOption = False,
    no_color: NoColorOption = False,
) -> None:
    """Serve the settings form until Enter is pressed.

    Loads the configuration (falling back to defaults), starts the local
    form server, opens the default browser and waits for Enter on the
    console before shutting everything down.
    """
    ctx = get_context(verbose=verbose, quiet=quiet, no_color=no_color, config=config)

    try:
        if port is not None:
            port = validate_port(port)
    except DMZError as e:
        handle_error(e)

    controller = LifecycleController(ctx, open_browser=not no_browser, port=port)
    raise typer.Exit(controller.run())


@app.command("apply")
def apply_cmd(
    config: ConfigOption = None,
    verbose: VerboseOption = 0,
    quiet: QuietOption = False,
    no_color: NoColorOption = False,
) -> None:
    """Push the configured settings to the router without the form.

    Unlike [bold]run[/bold], a missing or invalid config file is an error.
    """
    ctx = get_context(verbose=verbose, quiet=quiet, no_color=no_color, config=config)

    try:
        settings = Settings.load(ctx.config_path)
        ctx.console.step(f"Applying settings to {settings.router_ip or '<no router_ip>'}")
        text = RouterClient().apply_or_raise(settings)
        ctx.console.success("操作成功！")
        if text:
            ctx.console.verbose(text)

    except DMZError as e:
        handle_error(e)


@config_app.command("show")
def config_show(
    config: ConfigOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
) -> None:
    """Show the effective settings.

    Displays what [bold]run[/bold] would start with. The stok token is masked.
    """
    ctx = get_context(verbose=verbose, no_color=no_color, config=config)
    settings = ctx.settings

    ctx.console.print()
    ctx.console.print(f"[bold]Configuration file:[/bold] {ctx.config_path}")
    ctx.console.print(f"[bold]File exists:[/bold] {ctx.config_path.exists()}")
    ctx.console.print()

    if ctx.config_error is not None:
        ctx.console.warn(f"Using defaults: {ctx.config_error}")
        for detail in ctx.config_error.details:
            ctx.console.print(f"  [dim]{detail}[/dim]")

    ctx.console.summary("Settings", ctx.settings.masked())
    ctx.console.summary("Router", {
        "Endpoint": build_url(settings.model_copy(update={"stok": "****"})),
        "Form URL": f"http://localhost:{settings.server_port}",
    })

    if verbose:
        ctx.console.json(settings.to_json(mask_stok=True), title="Effective settings")


@config_app.command("init")
def config_init(
    config: ConfigOption = None,
    force: ForceOption = False,
    no_color: NoColorOption = False,
) -> None:
    """Initialize a new configuration file.

    Creates a configuration file with example values.
    """
    ctx = get_context(no_color=no_color, config=config)
    config_path = ctx.config_path

    try:
        init_config(config_path, force=force)
        ctx.console.success(f"Configuration file created: {config_path}")
        ctx.console.info("Edit router_ip and stok, then run: dmzctl run")

    except DMZError as e:
        handle_error(e)


@config_app.command("example")
def config_example(no_color: NoColorOption = False) -> None:
    """Print example configuration file."""
    ctx = get_context(no_color=no_color)
    ctx.console.json(get_example_config(), title="config.json")


if __name__ == "__main__":
    app()
