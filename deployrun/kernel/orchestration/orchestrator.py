"""Deployment orchestrator: the public face of the run subsystem.

Wires the lock, registry, executor, subscriber hub and finalizer together
and exposes four operations:

- :meth:`DeploymentOrchestrator.start_run`
- :meth:`DeploymentOrchestrator.attach_subscriber`
- :meth:`DeploymentOrchestrator.get_run`
- :meth:`DeploymentOrchestrator.is_busy`

A run executes as a background task owned by the orchestrator, never by
the request that started it.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from deployrun.drivers.input_renderer.env_template import EnvTemplateRenderer
from deployrun.drivers.process_executor.local import ExecutionOutcome, LocalProcessExecutor
from deployrun.drivers.process_executor.log_sink import LogSink
from deployrun.drivers.record_store.filesystem import FileRunRecordStore
from deployrun.drivers.run_registry.local import LocalRunRegistry
from deployrun.drivers.subscriber_hub.local import LocalSubscriberHub
from deployrun.kernel.exceptions import (
    DeploymentBusyError,
    RunNotFoundError,
    SpawnFailure,
    StreamFailure,
)
from deployrun.kernel.logging import get_logger
from deployrun.kernel.orchestration.finalizer import RunFinalizer
from deployrun.kernel.run_lock import RunLock

if TYPE_CHECKING:
    from deployrun.kernel.config.models import DeployRunConfig
    from deployrun.kernel.domain.ballot_config import BallotConfig
    from deployrun.kernel.domain.run import Run, RunRecord
    from deployrun.kernel.ports.input_renderer import InputFile, InputRenderer
    from deployrun.kernel.ports.run_record_store import RunRecordStore
    from deployrun.kernel.ports.subscriber import SubscriberChannel

logger = get_logger(__name__)


class DeploymentOrchestrator:
    """Runs one deployment at a time and streams it to observers.

    Build it with :meth:`from_config` in production; the keyword constructor
    exists so tests can swap individual collaborators.
    """

    def __init__(
        self,
        *,
        lock: RunLock,
        registry: LocalRunRegistry,
        hub: LocalSubscriberHub,
        executor: LocalProcessExecutor,
        finalizer: RunFinalizer,
        renderer: InputRenderer,
        store: RunRecordStore,
    ) -> None:
        self._lock = lock
        self._registry = registry
        self._hub = hub
        self._executor = executor
        self._finalizer = finalizer
        self._renderer = renderer
        self._store = store
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @classmethod
    def from_config(
        cls,
        config: DeployRunConfig,
        *,
        store: RunRecordStore | None = None,
        renderer: InputRenderer | None = None,
    ) -> DeploymentOrchestrator:
        """Assemble an orchestrator with the local drivers."""
        lock = RunLock()
        registry = LocalRunRegistry(config.history_path, config.max_retained_runs)
        hub = LocalSubscriberHub(registry)
        store = store or FileRunRecordStore(config.history_path)
        executor = LocalProcessExecutor(
            command=config.command,
            cwd=config.contracts_path,
            hub=hub,
            input_env_var=config.input_env_var,
            run_timeout=config.run_timeout,
            kill_grace_period=config.kill_grace_period,
        )
        finalizer = RunFinalizer(
            hub=hub,
            store=store,
            lock=lock,
            artifact_path=config.artifact_file,
            project_root=config.project_root,
            log_flush_timeout=config.log_flush_timeout,
        )
        return cls(
            lock=lock,
            registry=registry,
            hub=hub,
            executor=executor,
            finalizer=finalizer,
            renderer=renderer or EnvTemplateRenderer(config.template_file, config.tmp_path),
            store=store,
        )

    @property
    def store(self) -> RunRecordStore:
        return self._store

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def start_run(self, config: BallotConfig) -> str:
        """Accept a new run and start it in the background.

        Returns
        -------
            The new run ID, immediately; the run continues on its own.

        Raises
        ------
        DeploymentBusyError
            If another run is still in flight
        """
        # No await before create_task: acceptance is atomic on the event loop
        if not self._lock.try_acquire():
            raise DeploymentBusyError()
        try:
            run = self._registry.create(config=config.snapshot())
        except Exception:
            self._lock.release()
            raise
        self._lock.assign(run.run_id)

        task = asyncio.create_task(self._execute(run, config), name=f"deploy-run:{run.run_id}")
        self._tasks[run.run_id] = task
        task.add_done_callback(lambda t: self._on_task_done(run.run_id, t))

        logger.info("Accepted deployment run {run_id}", run_id=run.run_id)
        return run.run_id

    def attach_subscriber(self, run_id: str, channel: SubscriberChannel) -> Run | None:
        """Start streaming ``run_id`` to ``channel``; None if the run is unknown."""
        return self._hub.attach(run_id, channel)

    def detach_subscriber(self, run_id: str, channel: SubscriberChannel) -> bool:
        return self._hub.detach(run_id, channel)

    def get_run(self, run_id: str) -> Run | None:
        return self._registry.get(run_id)

    def is_busy(self) -> bool:
        return self._lock.locked

    # ------------------------------------------------------------------
    # Helpers for servers, the CLI and tests
    # ------------------------------------------------------------------

    async def load_latest_success(self) -> dict[str, Any] | None:
        return await self._store.load_latest_success()

    async def wait_for_run(self, run_id: str, timeout: float | None = None) -> RunRecord | None:
        """Wait until ``run_id`` is finalized and return its record.

        Raises
        ------
        RunNotFoundError
            If the run is unknown to this process
        TimeoutError
            If the run is still in flight after ``timeout`` seconds
        """
        if run_id not in self._registry:
            raise RunNotFoundError(run_id)
        task = self._tasks.get(run_id)
        if task is not None:
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        run = self._registry.get(run_id)
        return run.record if run is not None else None

    async def aclose(self) -> None:
        """Cancel in-flight runs; each is still finalized as failed."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _execute(self, run: Run, config: BallotConfig) -> None:
        sink: LogSink | None = None
        input_file: InputFile | None = None
        try:
            try:
                input_file = await self._renderer.render(config)
            except Exception as e:
                logger.error(
                    "Run {run_id}: could not prepare deployment input: {error}",
                    run_id=run.run_id,
                    error=e,
                )
                outcome = ExecutionOutcome(
                    exit_code=None,
                    error=SpawnFailure(f"Failed to prepare deployment input: {e}"),
                )
            else:
                sink = LogSink(run.log_path)
                outcome = await self._executor.execute(run, input_file.path, sink)
        except asyncio.CancelledError:
            outcome = ExecutionOutcome(exit_code=None, error=StreamFailure("Run was interrupted"))
            await self._finalizer.finalize(run, outcome, sink, input_file)
            raise
        await self._finalizer.finalize(run, outcome, sink, input_file)

    def _on_task_done(self, run_id: str, task: asyncio.Task[None]) -> None:
        self._tasks.pop(run_id, None)
        error = StreamFailure("Run was interrupted")
        if not task.cancelled() and (exc := task.exception()) is not None:
            logger.opt(exception=exc).error("Run {run_id} task crashed", run_id=run_id)
            error = StreamFailure(f"Run task failed: {exc}")
        run = self._registry.get(run_id)
        if run is not None and not run.is_terminal:
            # Cancelled before its first step; the finalizer never ran
            self._finalizer.abandon(run, ExecutionOutcome(exit_code=None, error=error))


__all__ = ["DeploymentOrchestrator"]
