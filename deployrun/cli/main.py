"""deployrun CLI - Main entrypoint."""

import typer
from rich.console import Console

from deployrun import __version__
from deployrun.cli.commands import deploy_cmd, runs_cmd, serve_cmd
from deployrun.kernel.logging import configure_logging

# Create the main Typer app
app = typer.Typer(
    name="deployrun",
    help="deployrun - single-flight deployment runs with live log streaming.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)

console = Console()

_LEVELS = {
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "warning": "WARNING",
    "error": "ERROR",
}

app.command("serve")(serve_cmd.serve)
app.command("deploy")(deploy_cmd.deploy)
app.command("latest")(runs_cmd.latest)
app.command("history")(runs_cmd.history)
app.command("show")(runs_cmd.show)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"[bold blue]deployrun[/bold blue] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def callback(
    ctx: typer.Context,
    *,
    json_out: bool = typer.Option(False, "--json", help="Output machine-readable JSON"),
    yaml_out: bool = typer.Option(False, "--yaml", help="Output machine-readable YAML"),
    log_level: str = typer.Option("info", "--log-level", help="Log level: debug|info|warn|error"),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """deployrun CLI.

    Global flags are parsed here and stored on `ctx.obj` for subcommands.
    """
    level = _LEVELS.get(log_level.lower())
    if level is None:
        console.print(f"[red]Error:[/red] unknown log level '{log_level}'")
        raise typer.Exit(code=2)

    output_format = "pretty"
    if json_out:
        output_format = "json"
    elif yaml_out:
        output_format = "yaml"

    if ctx.obj is None:
        ctx.obj = {}
    ctx.obj.update({"output_format": output_format, "log_level": level, "version": __version__})

    configure_logging(level=level, format="console", force_reconfigure=True)


def main() -> None:
    """Main CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
