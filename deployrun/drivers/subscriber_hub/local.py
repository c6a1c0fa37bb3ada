"""Local subscriber hub: fans run events out to live observer channels.

Each observer gets its own bounded :class:`QueueChannel`, so the
broadcaster never awaits a consumer. A channel that is closed, full, or
raises on delivery is detached on the spot; the remaining subscribers are
unaffected.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import TYPE_CHECKING, Any, Protocol

from deployrun.kernel.logging import get_logger
from deployrun.kernel.orchestration.events import ResultEvent, RunEvent, StatusEvent

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from deployrun.drivers.run_registry.local import LocalRunRegistry
    from deployrun.kernel.domain.run import Run
    from deployrun.kernel.ports.subscriber import SubscriberChannel

logger = get_logger(__name__)

DEFAULT_QUEUE_SIZE = 1000

_CLOSED = object()


class ErrorHandler(Protocol):
    """Protocol for handling delivery errors."""

    def handle_error(self, error: Exception, context: dict[str, Any]) -> None: ...


class LoggingErrorHandler:
    """Default error handler that logs delivery failures."""

    def __init__(self, log: Any | None = None) -> None:
        self.logger: Any = log if log is not None else logger

    def handle_error(self, error: Exception, context: dict[str, Any]) -> None:
        self.logger.warning(
            "Subscriber {channel} failed for {event_type} on run {run_id}: {error}",
            channel=context.get("channel", "unknown"),
            event_type=context.get("event_type", "unknown"),
            run_id=context.get("run_id", "unknown"),
            error=error,
        )


class QueueChannel:
    """Subscriber channel backed by a bounded :class:`asyncio.Queue`.

    The hub pushes without waiting; the consumer drains with ``async for``.
    Iteration ends once the channel is closed and every event queued before
    the close has been yielded.
    """

    def __init__(self, maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        self.channel_id = uuid.uuid4().hex
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, event: RunEvent) -> bool:
        if self._closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.debug("Channel {id} is full, dropping it", id=self.channel_id)
            self.close()
            return False
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # Slow consumer: give up the oldest event to make room for the sentinel
            self._queue.get_nowait()
            self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[RunEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item

    def __repr__(self) -> str:
        return f"<QueueChannel {self.channel_id}{' closed' if self._closed else ''}>"


class LocalSubscriberHub:
    """Per-run fan-out of ``status``, ``log`` and ``result`` events.

    Delivery is at-most-once and best-effort per channel. Historical log
    lines are not replayed: a channel attaching late receives the current
    status snapshot and, for a finished run, the final record.

    Parameters
    ----------
    registry : LocalRunRegistry
        Source of runs; subscriber sets live on the :class:`Run` itself
    error_handler : ErrorHandler | None
        Receives delivery exceptions, defaults to :class:`LoggingErrorHandler`
    """

    def __init__(
        self,
        registry: LocalRunRegistry,
        error_handler: ErrorHandler | None = None,
    ) -> None:
        self._registry = registry
        self._error_handler = error_handler or LoggingErrorHandler()

    def attach(self, run_id: str, channel: SubscriberChannel) -> Run | None:
        """Register ``channel`` for ``run_id`` and replay the current state.

        Returns
        -------
            The run, or None when the ID is unknown (the channel is untouched).
        """
        run = self._registry.get(run_id)
        if run is None:
            return None

        run.subscribers.add(channel)
        if not self._deliver(run, channel, StatusEvent(run.run_id, run.snapshot())):
            return run
        if run.record is not None:
            self._deliver(run, channel, ResultEvent(run.run_id, run.record.to_payload()))
        logger.debug(
            "Attached subscriber to run {run_id} ({count} total)",
            run_id=run_id,
            count=len(run.subscribers),
        )
        return run

    def detach(self, run_id: str, channel: SubscriberChannel) -> bool:
        """Unregister a channel, e.g. when its HTTP connection closes."""
        run = self._registry.get(run_id)
        if run is None or channel not in run.subscribers:
            return False
        run.subscribers.discard(channel)
        return True

    def broadcast(self, run_id: str, event: RunEvent) -> int:
        """Deliver ``event`` to every live subscriber of ``run_id``.

        Returns
        -------
            Number of channels that accepted the event.
        """
        run = self._registry.get(run_id)
        if run is None:
            return 0

        delivered = 0
        # Iterate a snapshot; _deliver may remove dead channels
        for channel in tuple(run.subscribers):
            if self._deliver(run, channel, event):
                delivered += 1
        return delivered

    def subscriber_count(self, run_id: str) -> int:
        run = self._registry.get(run_id)
        return len(run.subscribers) if run is not None else 0

    def _deliver(self, run: Run, channel: SubscriberChannel, event: RunEvent) -> bool:
        if channel.closed:
            run.subscribers.discard(channel)
            return False
        try:
            ok = channel.push(event)
        except Exception as exc:
            self._error_handler.handle_error(
                exc,
                {"channel": repr(channel), "event_type": event.kind, "run_id": run.run_id},
            )
            ok = False
        if not ok:
            run.subscribers.discard(channel)
            channel.close()
        return ok


__all__ = ["LocalSubscriberHub", "LoggingErrorHandler", "QueueChannel"]
