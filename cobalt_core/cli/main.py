"""CLI entry point.

Provides the main CLI application with command groups for:
- settings: list, change, reset, export and import settings
- errors: inspect, export and clear the diagnostics log
"""

from typing import Annotated

import typer

from cobalt_core import __version__
from cobalt_core.cli.commands.errors import app as errors_app
from cobalt_core.cli.commands.settings import app as settings_app
from cobalt_core.cli.utils import console
from cobalt_core.logging_config import configure_logging

app = typer.Typer(
    name="cobalt",
    help="Settings registry and diagnostics for Cobalt",
    add_completion=False,
    no_args_is_help=True,
)

app.add_typer(settings_app, name="settings")
app.add_typer(errors_app, name="errors")


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log debug output to stderr"),
    ] = False,
) -> None:
    """Cobalt core operator tools."""
    configure_logging("DEBUG" if verbose else "WARNING")


@app.command()
def version() -> None:
    """Show the installed version."""
    console.print(f"cobalt-core {__version__}")
