"""Settings commands."""

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich.panel import Panel
from rich.table import Table

from cobalt_core.cli.utils import console, format_value, open_core, parse_value
from cobalt_core.exceptions import CobaltError

app = typer.Typer(
    name="settings",
    help="Inspect and change persisted settings",
    no_args_is_help=True,
)


@app.command("list")
def settings_list(
    category: Annotated[
        str | None,
        typer.Option("--category", "-c", help="Only show one category"),
    ] = None,
) -> None:
    """List settings grouped by category."""
    asyncio.run(_list_settings(category))


async def _list_settings(category: str | None) -> None:
    async with open_core() as core:
        registry = core.registry
        categories = [c for c in registry.get_categories() if category is None or c.id == category]

        if not categories:
            console.print(f"[yellow]No category named {category!r}.[/yellow]")
            raise typer.Exit(1)

        for cat in categories:
            table = Table(title=cat.label, show_header=True)
            table.add_column("Key", style="cyan")
            table.add_column("Label")
            table.add_column("Value")
            table.add_column("Source", justify="center")

            for entry in registry.get_by_category(cat.id):
                value = format_value(entry.value.value)
                if not entry.value.is_default:
                    value = f"[bold]{value}[/bold]"
                table.add_row(entry.definition.key, entry.definition.label, value, str(entry.value.source))

            console.print(table)

        restart = registry.get_restart_required_settings()
        if restart:
            console.print(f"[yellow]Restart required for: {', '.join(restart)}[/yellow]")


@app.command("get")
def settings_get(
    key: Annotated[str, typer.Argument(help="Setting key")],
) -> None:
    """Print the current value of one setting."""
    asyncio.run(_get_setting(key))


async def _get_setting(key: str) -> None:
    async with open_core() as core:
        record = core.registry.get_value(key)
        if record is None:
            console.print(f"[red]Unknown setting: {key}[/red]")
            raise typer.Exit(1)
        console.print(format_value(record.value))


@app.command("set")
def settings_set(
    key: Annotated[str, typer.Argument(help="Setting key")],
    value: Annotated[str, typer.Argument(help="New value (JSON, or a bare string)")],
) -> None:
    """Change one setting."""
    asyncio.run(_set_setting(key, parse_value(value)))


async def _set_setting(key: str, value: object) -> None:
    async with open_core() as core:
        try:
            await core.registry.set(key, value)
        except CobaltError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1) from e

        console.print(f"[green]{key} = {format_value(value)}[/green]")
        for problem in core.registry.validate_dependencies(key):
            console.print(f"[yellow]{problem}[/yellow]")


@app.command("reset")
def settings_reset(
    key: Annotated[
        str | None,
        typer.Argument(help="Setting key to reset"),
    ] = None,
    all_: Annotated[
        bool,
        typer.Option("--all", "-a", help="Reset every setting"),
    ] = False,
    category: Annotated[
        str | None,
        typer.Option("--category", "-c", help="Reset every setting in a category"),
    ] = None,
) -> None:
    """Restore defaults for one key, one category, or everything."""
    if sum(bool(x) for x in (key, all_, category)) != 1:
        console.print("[red]Give exactly one of KEY, --all or --category.[/red]")
        raise typer.Exit(2)
    asyncio.run(_reset_settings(key, all_, category))


async def _reset_settings(key: str | None, all_: bool, category: str | None) -> None:
    async with open_core() as core:
        registry = core.registry
        if key is not None:
            try:
                await registry.reset(key)
            except CobaltError as e:
                console.print(f"[red]{e}[/red]")
                raise typer.Exit(1) from e
            errors: list[str] = []
        elif all_:
            errors = await registry.reset_all()
        else:
            errors = await registry.reset_category(category or "")

        for error in errors:
            console.print(f"[red]{error}[/red]")
        if errors:
            raise typer.Exit(1)
        console.print("[green]Reset complete.[/green]")


@app.command("search")
def settings_search(
    query: Annotated[str, typer.Argument(help="Search terms")],
) -> None:
    """Find settings by label, description, key or category."""
    asyncio.run(_search_settings(query))


async def _search_settings(query: str) -> None:
    async with open_core() as core:
        results = core.registry.search(query)

    if not results:
        console.print("[yellow]No matching settings.[/yellow]")
        return

    table = Table(title=f"Results for {query!r}", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Label")
    table.add_column("Value")
    table.add_column("Relevance", justify="right")
    for result in results:
        table.add_row(
            result.definition.key,
            result.definition.label,
            format_value(result.value.value),
            f"{result.relevance:.3f}",
        )
    console.print(table)


@app.command("export")
def settings_export(
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write to a file instead of stdout"),
    ] = None,
    fmt: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: json or yaml"),
    ] = "json",
) -> None:
    """Export non-default settings."""
    if fmt not in ("json", "yaml"):
        console.print(f"[red]Unsupported format: {fmt}[/red]")
        raise typer.Exit(2)
    asyncio.run(_export_settings(output, fmt))


async def _export_settings(output: Path | None, fmt: str) -> None:
    async with open_core() as core:
        payload = core.registry.export_settings().to_wire()

    if fmt == "yaml":
        text = yaml.safe_dump(payload, sort_keys=False)
    else:
        text = json.dumps(payload, indent=2)

    if output is None:
        console.print(text, markup=False, highlight=False, soft_wrap=True)
        return
    output.write_text(text, encoding="utf-8")
    console.print(f"[green]Exported {len(payload['settings'])} settings to {output}[/green]")


@app.command("import")
def settings_import(
    path: Annotated[Path, typer.Argument(help="JSON or YAML export file", exists=True, dir_okay=False)],
) -> None:
    """Import settings from an export file."""
    asyncio.run(_import_settings(path))


async def _import_settings(path: Path) -> None:
    text = path.read_text(encoding="utf-8")
    data = yaml.safe_load(text) if path.suffix in (".yaml", ".yml") else json.loads(text)
    if not isinstance(data, dict):
        console.print("[red]Export file must contain a mapping.[/red]")
        raise typer.Exit(1)

    async with open_core() as core:
        try:
            result = await core.registry.import_settings(data)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1) from e

    console.print(
        Panel(
            f"Imported: {result.imported}\nSkipped: {result.skipped}\nErrors: {len(result.errors)}",
            title="Import",
            border_style="red" if result.errors else "green",
        )
    )
    for error in result.errors:
        console.print(f"[red]{error}[/red]")
