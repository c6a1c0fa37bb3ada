"""deployrun deploy - run one deployment in the foreground and stream its output."""

import asyncio
import json
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError

from deployrun.cli.utils import console, load_cli_config
from deployrun.drivers.subscriber_hub.local import QueueChannel
from deployrun.kernel.config.models import DeployRunConfig
from deployrun.kernel.domain.ballot_config import BallotConfig
from deployrun.kernel.orchestration.events import LogEvent, ResultEvent, StatusEvent
from deployrun.kernel.orchestration.orchestrator import DeploymentOrchestrator


async def _deploy(config: DeployRunConfig, ballot: BallotConfig) -> dict[str, Any]:
    orchestrator = DeploymentOrchestrator.from_config(config)
    run_id = await orchestrator.start_run(ballot)
    console.print(f"[cyan]Run started:[/cyan] {run_id}")

    channel = QueueChannel(maxsize=config.subscriber_queue_size)
    orchestrator.attach_subscriber(run_id, channel)
    result: dict[str, Any] | None = None
    try:
        async for event in channel:
            if isinstance(event, LogEvent):
                style = "red" if event.stream == "stderr" else None
                console.print(event.line, style=style, markup=False, highlight=False)
            elif isinstance(event, StatusEvent):
                console.print(f"[dim]status: {event.status}[/dim]")
            elif isinstance(event, ResultEvent):
                result = event.record
                break
        if result is None:
            # Channel closed early (buffer overflow); the run itself continues
            record = await orchestrator.wait_for_run(run_id)
            result = record.to_payload() if record is not None else {"runId": run_id}
    finally:
        orchestrator.detach_subscriber(run_id, channel)
        await orchestrator.aclose()
    return result


def deploy(
    ballot_path: Path = typer.Argument(
        ...,
        help="Ballot configuration JSON file",
        exists=True,
        dir_okay=False,
        resolve_path=True,
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
    """Run a deployment in the foreground.

    Exits with status 0 when the run succeeds and 1 otherwise.
    """
    try:
        ballot = BallotConfig.model_validate(json.loads(ballot_path.read_text(encoding="utf-8")))
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON:[/red] {e}")
        raise typer.Exit(1) from e
    except ValidationError as e:
        console.print(f"[red]Invalid ballot configuration:[/red]\n{e}")
        raise typer.Exit(1) from e

    config = load_cli_config(config_path)
    record = asyncio.run(_deploy(config, ballot))

    if record.get("status") == "success":
        console.print(f"[green]✓ Deployment {record.get('runId')} succeeded[/green]")
        for name, contract in (record.get("contracts") or {}).items():
            console.print(f"  {name}: {contract.get('address')}", markup=False)
        return
    console.print(f"[red]✗ Deployment {record.get('runId')} failed:[/red] {record.get('error')}")
    raise typer.Exit(1)
