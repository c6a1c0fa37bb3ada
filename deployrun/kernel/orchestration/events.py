"""Event data classes pushed to run subscribers.

Three kinds travel over the wire: ``status`` (run snapshot), ``log`` (one
line of process output) and ``result`` (the finished :class:`RunRecord`).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Literal

from deployrun.kernel.domain.run import isoformat, utcnow

StreamName = Literal["stdout", "stderr"]


@dataclass(slots=True)
class RunEvent:
    """Base class for all run events."""

    kind: ClassVar[str] = "event"

    run_id: str

    def payload(self) -> dict[str, Any]:
        """JSON-ready body of the event."""
        raise NotImplementedError


@dataclass(slots=True)
class StatusEvent(RunEvent):
    """Snapshot of a run's status."""

    kind: ClassVar[str] = "status"

    snapshot: dict[str, Any]

    @property
    def status(self) -> str:
        return self.snapshot["status"]

    def payload(self) -> dict[str, Any]:
        return dict(self.snapshot)


@dataclass(slots=True)
class LogEvent(RunEvent):
    """One line read from the deployment process."""

    kind: ClassVar[str] = "log"

    stream: StreamName
    line: str
    timestamp: datetime = field(default_factory=utcnow)

    def payload(self) -> dict[str, Any]:
        return {"stream": self.stream, "line": self.line, "timestamp": isoformat(self.timestamp)}

    def log_line(self) -> str:
        """Line as written to the run's durable transcript."""
        return f"[{self.stream.upper()}] {self.line}\n"


@dataclass(slots=True)
class ResultEvent(RunEvent):
    """The finished run record."""

    kind: ClassVar[str] = "result"

    record: dict[str, Any]

    def payload(self) -> dict[str, Any]:
        return dict(self.record)


def format_sse(event: RunEvent) -> str:
    """Format an event as a Server-Sent Event frame."""
    return f"event: {event.kind}\ndata: {json.dumps(event.payload())}\n\n"


def sse_preamble(retry_ms: int) -> str:
    """Comment frame and reconnect hint sent before the status replay."""
    return f": connected\n\nretry: {retry_ms}\n\n"
