"""deployrun serve - HTTP server for the admin deployment UI.

Usage:
    deployrun serve
    deployrun serve --port 8080 --config deployrun.yaml
"""

from pathlib import Path

import typer

from deployrun import __version__
from deployrun.cli.utils import console, load_cli_config


def serve(
    host: str = typer.Option(
        "127.0.0.1",
        "--host",
        "-h",
        help="Host to bind to",
    ),
    port: int = typer.Option(
        4000,
        "--port",
        "-p",
        help="Port to bind to",
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (YAML or pyproject.toml)",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
) -> None:
    """Start the deployment server.

    Examples:
        deployrun serve
        deployrun serve --host 0.0.0.0 --port 8080
    """
    from deployrun.server.main import run_server

    config = load_cli_config(config_path)

    console.print()
    console.print(f"[bold blue]deployrun[/bold blue] v{__version__}")
    console.print()
    console.print(f"  [dim]Project:[/dim]  {config.project_root}")
    console.print(f"  [dim]Command:[/dim]  {' '.join(config.command)}")
    console.print(
        f"  [dim]Local:[/dim]    [link=http://{host}:{port}]http://{host}:{port}[/link]"
    )
    if not config.admin_token:
        console.print(
            "  [yellow]Warning:[/yellow] ADMIN_DEPLOY_TOKEN is not set; "
            "deployment routes will reject every request"
        )
    console.print()

    run_server(config, host=host, port=port)
