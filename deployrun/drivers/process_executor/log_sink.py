"""Single-writer sink for a run's durable log transcript.

Both stream pumps enqueue lines; one drain task owns the file handle and
writes them in arrival order, so lines never interleave mid-write and each
stream's own order is preserved.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import aiofiles

from deployrun.kernel.exceptions import StreamFailure
from deployrun.kernel.logging import get_logger

if TYPE_CHECKING:
    from pathlib import Path

logger = get_logger(__name__)

DEFAULT_SINK_QUEUE_SIZE = 10_000

_EOF = object()


class LogSink:
    """Append-only transcript writer fed through a bounded queue.

    Parameters
    ----------
    path : Path
        Transcript file, opened in append mode
    maxsize : int
        Queue bound; producers wait when the writer falls behind
    """

    def __init__(self, path: Path, maxsize: int = DEFAULT_SINK_QUEUE_SIZE) -> None:
        self.path = path
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._task: asyncio.Task[None] | None = None
        self._closing = False
        self.error: Exception | None = None
        self.lines_written = 0

    @property
    def opened(self) -> bool:
        return self._task is not None

    @property
    def finished(self) -> bool:
        return self._task is not None and self._task.done()

    async def open(self) -> None:
        """Open the transcript and start the writer task.

        Raises
        ------
        StreamFailure
            If the directory or file cannot be opened
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            handle = await aiofiles.open(self.path, mode="a", encoding="utf-8")
        except OSError as e:
            raise StreamFailure(f"Cannot open run log {self.path}: {e}") from e
        self._task = asyncio.create_task(self._drain(handle), name=f"log-sink:{self.path.name}")

    async def write(self, text: str) -> None:
        """Queue text for the writer; waits only when the queue is full."""
        if self._closing:
            msg = f"Log sink for {self.path} is closed"
            raise StreamFailure(msg)
        await self._queue.put(text)

    async def aclose(self, timeout: float | None = None) -> None:
        """Signal end of input and wait for every queued line to be flushed.

        Raises
        ------
        TimeoutError
            If the writer has not finished within ``timeout`` seconds
        """
        if self._task is None:
            return
        if not self._closing:
            self._closing = True
            await self._queue.put(_EOF)
        # shield: a timed-out wait must not kill the writer mid-flush
        await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)

    async def _drain(self, handle: Any) -> None:
        try:
            while True:
                item = await self._queue.get()
                if item is _EOF:
                    break
                if self.error is not None:
                    continue
                try:
                    await handle.write(item)
                    self.lines_written += 1
                except OSError as e:
                    self.error = e
                    logger.error("Writing run log {path} failed: {error}", path=self.path, error=e)
            if self.error is None:
                await handle.flush()
        except OSError as e:
            self.error = e
            logger.error("Flushing run log {path} failed: {error}", path=self.path, error=e)
        finally:
            await handle.close()


__all__ = ["LogSink"]
