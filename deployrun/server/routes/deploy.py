"""Deployment routes: start a run, stream it, and read history.

Event stream
------------
``GET /internal-deploy/logs?runId=...`` answers with Server-Sent Events:

- a ``: connected`` comment and a ``retry:`` reconnect hint
- ``status``: the current run snapshot, then every status change
- ``log``: live lines from the deployment process
- ``result``: the finished run record; the stream ends after it
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError

from deployrun.drivers.subscriber_hub.local import QueueChannel
from deployrun.kernel.domain.ballot_config import BallotConfig
from deployrun.kernel.exceptions import DeploymentBusyError, PersistenceError
from deployrun.kernel.logging import get_logger
from deployrun.kernel.orchestration.events import format_sse, sse_preamble
from deployrun.kernel.orchestration.orchestrator import DeploymentOrchestrator
from deployrun.kernel.ports.run_record_store import SupportsRunHistory
from deployrun.server.auth import ApiError, require_admin_token

logger = get_logger(__name__)

router = APIRouter(
    prefix="/internal-deploy",
    tags=["internal-deploy"],
    dependencies=[Depends(require_admin_token)],
)


def get_orchestrator(request: Request) -> DeploymentOrchestrator:
    return request.app.state.orchestrator


@router.post("", status_code=202)
async def start_deployment(
    body: dict[str, Any] = Body(...),
    orchestrator: DeploymentOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Validate a ballot configuration and start a deployment run."""
    try:
        config = BallotConfig.model_validate(body)
    except ValidationError as e:
        raise ApiError(
            400, "BALLOT_CONFIG_INVALID", details=json.loads(e.json(include_url=False))
        ) from e

    try:
        run_id = await orchestrator.start_run(config)
    except DeploymentBusyError as e:
        raise ApiError(409, e.code) from e
    return {"success": True, "runId": run_id}


@router.get("/logs")
async def stream_deployment_logs(
    request: Request,
    run_id: str | None = Query(None, alias="runId"),
    orchestrator: DeploymentOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Attach to a run and stream its events until the final result."""
    if not run_id:
        raise ApiError(400, "RUN_ID_REQUIRED")

    config = request.app.state.config
    channel = QueueChannel(maxsize=config.subscriber_queue_size)
    if orchestrator.attach_subscriber(run_id, channel) is None:
        raise ApiError(404, "RUN_NOT_FOUND")

    async def event_generator() -> AsyncGenerator[str, None]:
        try:
            yield sse_preamble(config.retry_interval_ms)
            async for event in channel:
                yield format_sse(event)
                if event.kind == "result":
                    break
        finally:
            orchestrator.detach_subscriber(run_id, channel)
            channel.close()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/latest")
async def latest_configuration(
    orchestrator: DeploymentOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Return the configuration of the most recent successful run."""
    try:
        config = await orchestrator.load_latest_success()
    except PersistenceError as e:
        logger.error("Reading latest configuration failed: {error}", error=e)
        raise ApiError(500, "INTERNAL_SERVER_ERROR") from e
    if not config:
        raise ApiError(404, "LATEST_CONFIG_NOT_FOUND")
    return {"success": True, "config": config}


@router.get("/status")
async def deployment_status(
    orchestrator: DeploymentOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    return {"busy": orchestrator.is_busy()}


@router.get("/runs/{run_id}")
async def get_deployment_run(
    run_id: str,
    orchestrator: DeploymentOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """Return a run's live snapshot, or its stored record after a restart."""
    run = orchestrator.get_run(run_id)
    if run is not None:
        record = run.record.to_payload() if run.record is not None else None
        return JSONResponse({"success": True, "run": run.snapshot(), "record": record})

    store = orchestrator.store
    if isinstance(store, SupportsRunHistory):
        try:
            stored = await store.load(run_id)
        except PersistenceError as e:
            logger.error("Reading record {run_id} failed: {error}", run_id=run_id, error=e)
            raise ApiError(500, "INTERNAL_SERVER_ERROR") from e
        if stored is not None:
            return JSONResponse({"success": True, "run": None, "record": stored})
    raise ApiError(404, "RUN_NOT_FOUND")
