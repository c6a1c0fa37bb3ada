"""Local process executor: runs the deployment script as a subprocess.

The rendered input file path is injected through the environment. stdout
and stderr are pumped concurrently, line by line; every line is queued to
the run's :class:`LogSink` and then broadcast as a ``log`` event. A line
longer than ``STREAM_LINE_LIMIT`` is passed on in limit-sized pieces.

``execute`` never raises for process problems. It settles to one of:

- a clean exit with a numeric code,
- a :class:`SpawnFailure` when the process could not start,
- a :class:`StreamFailure` when output could not be read or logged,
- a :class:`RunTimeoutError` when ``run_timeout`` elapsed first.
"""

from __future__ import annotations

import asyncio
import os
import signal
from contextlib import suppress
from dataclasses import dataclass
from typing import TYPE_CHECKING

from deployrun.kernel.exceptions import (
    DeployRunError,
    RunTimeoutError,
    SpawnFailure,
    StreamFailure,
)
from deployrun.kernel.logging import get_logger
from deployrun.kernel.orchestration.events import LogEvent, StatusEvent, StreamName

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

    from deployrun.drivers.process_executor.log_sink import LogSink
    from deployrun.drivers.subscriber_hub.local import LocalSubscriberHub
    from deployrun.kernel.domain.run import Run

logger = get_logger(__name__)

# asyncio's default 64 KiB line limit is too small for compiler dumps
STREAM_LINE_LIMIT = 1024 * 1024
_DISCARD_CHUNK = 64 * 1024


@dataclass(frozen=True, slots=True)
class ExecutionOutcome:
    """How a deployment process settled."""

    exit_code: int | None
    error: DeployRunError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.exit_code == 0


class LocalProcessExecutor:
    """Spawn the deployment command and mirror its output.

    Parameters
    ----------
    command : Sequence[str]
        Program and arguments
    cwd : Path
        Working directory of the process
    hub : LocalSubscriberHub
        Receives the ``running`` status and every ``log`` event
    input_env_var : str
        Name of the env var carrying the input file path
    run_timeout : float | None
        Seconds before the process is terminated; None waits forever
    kill_grace_period : float
        Seconds between SIGTERM and SIGKILL on timeout
    env : Mapping[str, str] | None
        Extra environment on top of ``os.environ``
    """

    def __init__(
        self,
        command: Sequence[str],
        cwd: Path,
        hub: LocalSubscriberHub,
        input_env_var: str = "DEPLOY_ENV_FILE",
        run_timeout: float | None = None,
        kill_grace_period: float = 5.0,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._command = tuple(command)
        self._cwd = cwd
        self._hub = hub
        self._input_env_var = input_env_var
        self._run_timeout = run_timeout
        self._kill_grace_period = kill_grace_period
        self._env = dict(env or {})

    async def execute(self, run: Run, input_path: Path, sink: LogSink) -> ExecutionOutcome:
        """Run the process to completion for ``run``.

        The run moves to ``running`` only once the process has spawned.
        """
        try:
            await sink.open()
        except StreamFailure as e:
            logger.error("Run {run_id}: {error}", run_id=run.run_id, error=e)
            return ExecutionOutcome(exit_code=None, error=e)

        env = {**os.environ, **self._env, self._input_env_var: str(input_path)}
        try:
            process = await asyncio.create_subprocess_exec(
                *self._command,
                cwd=self._cwd,
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=STREAM_LINE_LIMIT,
                start_new_session=True,
            )
        except OSError as e:
            logger.error(
                "Run {run_id}: failed to start {command}: {error}",
                run_id=run.run_id,
                command=" ".join(self._command),
                error=e,
            )
            return ExecutionOutcome(
                exit_code=None, error=SpawnFailure(f"Failed to start deployment process: {e}")
            )

        logger.info("Run {run_id}: started pid {pid}", run_id=run.run_id, pid=process.pid)
        run.mark_running()
        self._hub.broadcast(run.run_id, StatusEvent(run.run_id, run.snapshot()))

        try:
            exit_code, error = await asyncio.wait_for(
                self._communicate(run, process, sink), timeout=self._run_timeout
            )
        except TimeoutError:
            logger.warning(
                "Run {run_id}: timed out after {timeout}s, terminating",
                run_id=run.run_id,
                timeout=self._run_timeout,
            )
            await self._terminate(process)
            return ExecutionOutcome(
                exit_code=process.returncode,
                error=RunTimeoutError(self._run_timeout or 0.0),
            )
        except asyncio.CancelledError:
            await self._terminate(process)
            raise
        except Exception as e:
            logger.exception("Run {run_id}: stream handling failed", run_id=run.run_id)
            await self._terminate(process)
            return ExecutionOutcome(exit_code=process.returncode, error=StreamFailure(str(e)))

        if error is None and sink.error is not None:
            error = StreamFailure(f"Failed writing run log: {sink.error}")

        logger.info(
            "Run {run_id}: process exited with code {code}", run_id=run.run_id, code=exit_code
        )
        return ExecutionOutcome(exit_code=exit_code, error=error)

    async def _communicate(
        self, run: Run, process: asyncio.subprocess.Process, sink: LogSink
    ) -> tuple[int, StreamFailure | None]:
        """Pump both streams to EOF, then wait for the exit code."""
        assert process.stdout is not None
        assert process.stderr is not None
        results = await asyncio.gather(
            self._pump(run, "stdout", process.stdout, sink),
            self._pump(run, "stderr", process.stderr, sink),
            return_exceptions=True,
        )
        exit_code = await process.wait()

        error: StreamFailure | None = None
        for stream_name, result in zip(("stdout", "stderr"), results, strict=True):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.error(
                    "Run {run_id}: reading {stream} failed: {error}",
                    run_id=run.run_id,
                    stream=stream_name,
                    error=result,
                )
                if error is None:
                    error = StreamFailure(f"Error reading {stream_name}: {result}")
        return exit_code, error

    async def _pump(
        self,
        run: Run,
        stream_name: StreamName,
        reader: asyncio.StreamReader,
        sink: LogSink,
    ) -> None:
        try:
            while raw := await _read_line(reader):
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                if not line:
                    continue
                event = LogEvent(run.run_id, stream_name, line)
                await sink.write(event.log_line())
                self._hub.broadcast(run.run_id, event)
        except (OSError, StreamFailure):
            # Keep the pipe drained so the process cannot block on a full buffer
            with suppress(OSError):
                while await reader.read(_DISCARD_CHUNK):
                    pass
            raise

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        """Stop the process and its children: SIGTERM, then SIGKILL after the grace period.

        The process leads its own session, so signalling the group also reaches
        grandchildren that would otherwise keep the output pipes open.
        """
        _signal_group(process, signal.SIGTERM)
        try:
            await asyncio.wait_for(process.wait(), timeout=self._kill_grace_period)
        except TimeoutError:
            _signal_group(process, signal.SIGKILL)
            await process.wait()


async def _read_line(reader: asyncio.StreamReader) -> bytes:
    """Return the next line, or the buffered head of an overlong one; ``b""`` at EOF."""
    try:
        return await reader.readuntil(b"\n")
    except asyncio.IncompleteReadError as e:
        return e.partial
    except asyncio.LimitOverrunError as e:
        # The rest of the line stays buffered and comes back on the next call
        return await reader.read(e.consumed)


def _signal_group(process: asyncio.subprocess.Process, sig: signal.Signals) -> None:
    with suppress(ProcessLookupError, PermissionError):
        os.killpg(process.pid, sig)


__all__ = ["ExecutionOutcome", "LocalProcessExecutor"]
