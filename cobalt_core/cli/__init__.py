"""CLI application setup using Typer.

Provides the command-line interface for inspecting a file-backed core.
"""

from cobalt_core.cli.main import app

__all__ = ["app"]
