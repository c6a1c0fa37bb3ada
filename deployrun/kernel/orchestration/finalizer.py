"""Run finalization: the exactly-once epilogue of every deployment run.

Order of operations:

1. resolve the terminal status from the execution outcome
2. wait (bounded) for the log sink to flush
3. read the optional result artifact
4. build the immutable :class:`RunRecord`
5. persist the record
6. on success, persist the configuration as the latest successful one
7. publish the terminal status and the record to subscribers
8. release the run lock
9. delete the transient input file

Steps 2, 3, 5, 6 and 9 log their failures and carry on; nothing here can
leave the lock held or a run without a terminal status.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import aiofiles
from pydantic import ValidationError

from deployrun.kernel.domain.run import ContractSummary, RunRecord, RunStatus, utcnow
from deployrun.kernel.exceptions import ArtifactUnavailable
from deployrun.kernel.logging import get_logger
from deployrun.kernel.orchestration.events import ResultEvent, StatusEvent

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

    from deployrun.drivers.process_executor.local import ExecutionOutcome
    from deployrun.drivers.process_executor.log_sink import LogSink
    from deployrun.drivers.subscriber_hub.local import LocalSubscriberHub
    from deployrun.kernel.domain.run import Run
    from deployrun.kernel.ports.input_renderer import InputFile
    from deployrun.kernel.ports.run_record_store import RunRecordStore
    from deployrun.kernel.run_lock import RunLock

logger = get_logger(__name__)


def resolve_status(outcome: ExecutionOutcome) -> tuple[RunStatus, str | None]:
    """Return the terminal status and error message for an outcome.

    ``success`` iff the exit code is exactly zero and no runtime error occurred.
    """
    if outcome.error is not None:
        return RunStatus.FAILED, str(outcome.error)
    if outcome.exit_code == 0:
        return RunStatus.SUCCESS, None
    if outcome.exit_code is None:
        return RunStatus.FAILED, "Deployment process did not report an exit code"
    return RunStatus.FAILED, f"Deployment process exited with code {outcome.exit_code}"


def summarize_contracts(deployment: Any) -> dict[str, ContractSummary] | None:
    """Reduce a result artifact to the stable per-contract summary."""
    if not isinstance(deployment, dict):
        return None
    contracts = deployment.get("contracts")
    if not isinstance(contracts, dict):
        return None
    return {
        name: ContractSummary.model_validate(details)
        for name, details in contracts.items()
        if isinstance(details, dict)
    }


async def read_artifact(path: Path) -> Any:
    """Load the result artifact; a missing file yields None.

    Raises
    ------
    ArtifactUnavailable
        If the file exists but cannot be read or parsed
    """
    try:
        async with aiofiles.open(path, encoding="utf-8") as f:
            content = await f.read()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise ArtifactUnavailable(f"Cannot read {path}: {e}") from e
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise ArtifactUnavailable(f"Invalid JSON in {path}: {e}") from e


class RunFinalizer:
    """Turns a settled run into its durable record and frees the lock.

    Parameters
    ----------
    hub : LocalSubscriberHub
        Receives the final ``status`` and ``result`` events
    store : RunRecordStore
        Durable history
    lock : RunLock
        Released after the final events are published
    artifact_path : Path
        Result artifact written by the deployment process
    project_root : Path
        Base for the record's relative ``logsPath``
    log_flush_timeout : float
        Bound on the wait for the log sink
    """

    def __init__(
        self,
        hub: LocalSubscriberHub,
        store: RunRecordStore,
        lock: RunLock,
        artifact_path: Path,
        project_root: Path,
        log_flush_timeout: float = 5.0,
    ) -> None:
        self._hub = hub
        self._store = store
        self._lock = lock
        self._artifact_path = artifact_path
        self._project_root = project_root
        self._log_flush_timeout = log_flush_timeout
        self._in_progress: set[str] = set()

    async def finalize(
        self,
        run: Run,
        outcome: ExecutionOutcome,
        sink: LogSink | None = None,
        input_file: InputFile | None = None,
    ) -> RunRecord | None:
        """Finalize ``run`` once; later calls return the existing record."""
        if run.is_terminal or run.run_id in self._in_progress:
            logger.warning("Run {run_id} is already finalized", run_id=run.run_id)
            return run.record
        self._in_progress.add(run.run_id)

        try:
            status, error = resolve_status(outcome)
            completed_at = utcnow()

            await self._flush(run, sink)
            contracts = await self._reconcile_artifact(run)
            record = RunRecord(
                run_id=run.run_id,
                status=status,
                exit_code=outcome.exit_code,
                created_at=run.created_at,
                completed_at=completed_at,
                logs_path=self._relative_log_path(run),
                config=run.config,
                contracts=contracts,
                error=error,
            )
            await self._persist(record, run.config)
            self._publish(run, record, completed_at)
        except Exception:
            logger.exception("Finalizing run {run_id} failed", run_id=run.run_id)
            if not run.is_terminal:
                self._publish_fallback(run, outcome)
        finally:
            self._lock.release()
            self._in_progress.discard(run.run_id)

        logger.info(
            "Run {run_id} finished: {status} (exit code {code})",
            run_id=run.run_id,
            status=run.status,
            code=run.exit_code,
        )
        await self._cleanup(run, input_file)
        return run.record

    def abandon(self, run: Run, outcome: ExecutionOutcome) -> None:
        """Fail a run whose task ended before :meth:`finalize` could run.

        Publishes the terminal pair and frees the lock without touching disk.
        """
        if run.is_terminal or run.run_id in self._in_progress:
            return
        logger.error(
            "Run {run_id} ended without finalization: {error}",
            run_id=run.run_id,
            error=outcome.error,
        )
        try:
            self._publish_fallback(run, outcome)
        finally:
            self._lock.release()

    async def _flush(self, run: Run, sink: LogSink | None) -> None:
        if sink is None:
            return
        try:
            await sink.aclose(timeout=self._log_flush_timeout)
        except TimeoutError:
            logger.warning(
                "Run {run_id}: log flush did not finish within {timeout}s",
                run_id=run.run_id,
                timeout=self._log_flush_timeout,
            )
        except Exception as e:
            logger.error("Run {run_id}: log flush failed: {error}", run_id=run.run_id, error=e)

    async def _reconcile_artifact(self, run: Run) -> dict[str, ContractSummary] | None:
        try:
            return summarize_contracts(await read_artifact(self._artifact_path))
        except (ArtifactUnavailable, ValidationError) as e:
            logger.warning(
                "Run {run_id}: ignoring deployment artifact: {error}", run_id=run.run_id, error=e
            )
            return None

    async def _persist(self, record: RunRecord, config: dict[str, Any]) -> None:
        try:
            await self._store.save(record)
        except Exception as e:
            logger.error(
                "Failed to persist deployment record {run_id}: {error}",
                run_id=record.run_id,
                error=e,
            )

        if record.status is not RunStatus.SUCCESS:
            return
        try:
            await self._store.save_latest_success(config)
        except Exception as e:
            logger.error("Failed to persist latest successful config: {error}", error=e)

    def _publish(self, run: Run, record: RunRecord, completed_at: datetime) -> None:
        # No await between the status change and the broadcasts: a subscriber
        # attaching concurrently sees either the old state or the final pair.
        run.complete(record.status, record.exit_code, record.error, completed_at=completed_at)
        run.record = record
        self._hub.broadcast(run.run_id, StatusEvent(run.run_id, run.snapshot()))
        self._hub.broadcast(run.run_id, ResultEvent(run.run_id, record.to_payload()))

    def _publish_fallback(self, run: Run, outcome: ExecutionOutcome) -> None:
        completed_at = utcnow()
        record = RunRecord(
            run_id=run.run_id,
            status=RunStatus.FAILED,
            exit_code=outcome.exit_code,
            created_at=run.created_at,
            completed_at=completed_at,
            logs_path=self._relative_log_path(run),
            config=run.config,
            error=str(outcome.error) if outcome.error else "Finalization failed",
        )
        self._publish(run, record, completed_at)

    def _relative_log_path(self, run: Run) -> str:
        try:
            return str(run.log_path.relative_to(self._project_root))
        except ValueError:
            return str(run.log_path)

    async def _cleanup(self, run: Run, input_file: InputFile | None) -> None:
        if input_file is None:
            return
        try:
            await input_file.cleanup()
        except Exception as e:
            logger.error(
                "Run {run_id}: failed to remove input file {path}: {error}",
                run_id=run.run_id,
                path=input_file.path,
                error=e,
            )


__all__ = ["RunFinalizer", "read_artifact", "resolve_status", "summarize_contracts"]
