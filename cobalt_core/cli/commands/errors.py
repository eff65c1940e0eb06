"""Diagnostics commands."""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table

from cobalt_core.cli.utils import console, open_core

app = typer.Typer(
    name="errors",
    help="Inspect the persisted error log",
    no_args_is_help=True,
)

_SEVERITY_STYLES = {
    "critical": "bold magenta",
    "high": "red",
    "medium": "yellow",
    "low": "dim",
}


@app.command("stats")
def errors_stats() -> None:
    """Show error counts by severity and source."""
    asyncio.run(_show_stats())


async def _show_stats() -> None:
    async with open_core() as core:
        stats = core.diagnostics.get_stats()

    console.print(
        Panel(
            f"Total: {stats.total}\n"
            f"Unresolved: {stats.unresolved}\n"
            f"Unresolved critical: {len(stats.critical_errors)}\n"
            f"Last 24h (shown up to 10): {len(stats.recent_errors)}",
            title="Error log",
            border_style="red" if stats.critical_errors else "green",
        )
    )

    if stats.by_severity:
        table = Table(title="By severity", show_header=True)
        table.add_column("Severity")
        table.add_column("Count", justify="right")
        for severity, count in sorted(stats.by_severity.items(), key=lambda item: -item[1]):
            style = _SEVERITY_STYLES.get(severity, "")
            table.add_row(f"[{style}]{severity}[/{style}]" if style else severity, str(count))
        console.print(table)

    if stats.by_source:
        table = Table(title="By source", show_header=True)
        table.add_column("Source", style="cyan")
        table.add_column("Count", justify="right")
        for source, count in sorted(stats.by_source.items(), key=lambda item: -item[1]):
            table.add_row(source, str(count))
        console.print(table)


@app.command("list")
def errors_list(
    limit: Annotated[
        int,
        typer.Option("--limit", "-l", help="Maximum errors to show"),
    ] = 20,
    unresolved: Annotated[
        bool,
        typer.Option("--unresolved", "-u", help="Only show unresolved errors"),
    ] = False,
) -> None:
    """List the most recent errors."""
    asyncio.run(_list_errors(limit, unresolved))


async def _list_errors(limit: int, unresolved: bool) -> None:
    async with open_core() as core:
        errors = [e for e in core.diagnostics.errors if not (unresolved and e.resolved)][:limit]

    if not errors:
        console.print("[green]No errors recorded.[/green]")
        return

    table = Table(title=f"Errors ({len(errors)})", show_header=True)
    table.add_column("Time")
    table.add_column("Code", style="cyan")
    table.add_column("Severity")
    table.add_column("Source")
    table.add_column("Message")
    table.add_column("Resolved", justify="center")

    for error in errors:
        style = _SEVERITY_STYLES.get(error.severity, "")
        table.add_row(
            datetime.fromtimestamp(error.timestamp).strftime("%Y-%m-%d %H:%M:%S"),
            error.code,
            f"[{style}]{error.severity}[/{style}]",
            error.source,
            error.message,
            "✓" if error.resolved else "",
        )
    console.print(table)


@app.command("export")
def errors_export(
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write to a file instead of stdout"),
    ] = None,
) -> None:
    """Dump session, stats and recent errors as JSON."""
    asyncio.run(_export_errors(output))


async def _export_errors(output: Path | None) -> None:
    async with open_core() as core:
        text = core.diagnostics.export_errors()

    if output is None:
        console.print(text, markup=False, highlight=False, soft_wrap=True)
        return
    output.write_text(text, encoding="utf-8")
    console.print(f"[green]Error report written to {output}[/green]")


@app.command("clear")
def errors_clear(
    resolved: Annotated[
        bool,
        typer.Option("--resolved", "-r", help="Only drop resolved errors"),
    ] = False,
) -> None:
    """Clear the persisted error log."""
    asyncio.run(_clear_errors(resolved))


async def _clear_errors(resolved: bool) -> None:
    async with open_core() as core:
        before = len(core.diagnostics.errors)
        if resolved:
            core.diagnostics.clear_resolved_errors()
        else:
            core.diagnostics.clear_errors()
        removed = before - len(core.diagnostics.errors)

    console.print(f"[green]Removed {removed} errors.[/green]")
