"""Run history commands: latest successful configuration and stored records."""

import asyncio
from pathlib import Path

import typer
from rich.table import Table

from deployrun.cli.utils import console, load_cli_config, output_format, print_output
from deployrun.drivers.record_store.filesystem import FileRunRecordStore
from deployrun.kernel.exceptions import PersistenceError

_STATUS_STYLES = {
    "success": "green",
    "failed": "red",
    "running": "yellow",
    "starting": "cyan",
}

ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Configuration file (YAML or pyproject.toml)",
    exists=True,
    dir_okay=False,
    resolve_path=True,
)


def _store(config_path: Path | None) -> FileRunRecordStore:
    return FileRunRecordStore(load_cli_config(config_path).history_path)


def latest(ctx: typer.Context, config_path: Path | None = ConfigOption) -> None:
    """Print the configuration of the most recent successful run."""
    try:
        config = asyncio.run(_store(config_path).load_latest_success())
    except PersistenceError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    if config is None:
        console.print("[yellow]No successful deployment recorded yet[/yellow]")
        raise typer.Exit(1)
    print_output(config, ctx)


def history(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Maximum records to show"),
    config_path: Path | None = ConfigOption,
) -> None:
    """List stored run records, newest first."""
    records = asyncio.run(_store(config_path).list_records(limit=limit))

    if output_format(ctx) != "pretty":
        print_output(records, ctx)
        return
    if not records:
        console.print("[dim]No runs recorded[/dim]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Run ID")
    table.add_column("Status")
    table.add_column("Exit")
    table.add_column("Created")
    table.add_column("Completed")
    table.add_column("Error")
    for record in records:
        status = str(record.get("status", "?"))
        style = _STATUS_STYLES.get(status, "white")
        exit_code = record.get("exitCode")
        table.add_row(
            str(record.get("runId", "")),
            f"[{style}]{status}[/{style}]",
            "-" if exit_code is None else str(exit_code),
            str(record.get("createdAt") or "-"),
            str(record.get("completedAt") or "-"),
            str(record.get("error") or ""),
        )
    console.print(table)


def show(
    ctx: typer.Context,
    run_id: str = typer.Argument(..., help="Run ID to show"),
    config_path: Path | None = ConfigOption,
) -> None:
    """Show one stored run record."""
    try:
        record = asyncio.run(_store(config_path).load(run_id))
    except PersistenceError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    if record is None:
        console.print(f"[red]Run {run_id} not found[/red]")
        raise typer.Exit(1)
    print_output(record, ctx)
