"""CLI helper utilities for deployrun commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol

import typer
import yaml
from rich.console import Console

from deployrun.compiler.config_loader import load_config
from deployrun.kernel.config.models import DeployRunConfig
from deployrun.kernel.exceptions import ConfigurationError


class ContextProtocol(Protocol):
    """Protocol for common interface between Click and Typer contexts."""

    @property
    def obj(self) -> dict[str, Any] | None: ...


console = Console()


def output_format(ctx: ContextProtocol | None) -> str:
    settings = getattr(ctx, "obj", None) if ctx is not None else None
    if isinstance(settings, dict):
        return settings.get("output_format", "pretty")
    return "pretty"


def print_output(data: Any, ctx: ContextProtocol | None = None) -> None:
    """Print `data` according to `ctx.obj['output_format']`.

    If ctx is None or no format specified, pretty-print using rich.console.
    """
    fmt = output_format(ctx)
    if fmt == "json":
        typer.echo(json.dumps(data, default=str, indent=2))
    elif fmt == "yaml":
        typer.echo(yaml.safe_dump(data, sort_keys=False))
    elif isinstance(data, (dict, list)):
        console.print_json(json.dumps(data, default=str))
    else:
        console.print(data)


def load_cli_config(path: Path | None) -> DeployRunConfig:
    """Load configuration, turning failures into a clean CLI exit."""
    try:
        return load_config(path)
    except (ConfigurationError, FileNotFoundError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e
