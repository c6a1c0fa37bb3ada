"""Domain model for deployment run tracking.

A :class:`Run` is the mutable, in-memory view of one execution attempt.
Once it reaches a terminal status its :class:`RunRecord` is built and never
changes again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from deployrun.kernel.exceptions import InvalidTransitionError

if TYPE_CHECKING:
    from deployrun.kernel.ports.subscriber import SubscriberChannel


def utcnow() -> datetime:
    return datetime.now(UTC)


def isoformat(value: datetime | None) -> str | None:
    """Render a timestamp the way events and records carry it."""
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


class RunStatus(StrEnum):
    """Lifecycle status of a deployment run."""

    STARTING = "starting"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.SUCCESS, RunStatus.FAILED)


_ALLOWED_TRANSITIONS: dict[RunStatus, frozenset[RunStatus]] = {
    RunStatus.STARTING: frozenset({RunStatus.RUNNING, RunStatus.FAILED}),
    RunStatus.RUNNING: frozenset({RunStatus.SUCCESS, RunStatus.FAILED}),
    RunStatus.SUCCESS: frozenset(),
    RunStatus.FAILED: frozenset(),
}


class _WireModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ContractSummary(_WireModel):
    """Stable subset of one deployed contract from the result artifact."""

    name: str | None = None
    address: str | None = None
    transaction_hash: str | None = None
    gas_used: int | str | None = None
    ballot: Any = None
    proposals: Any = None
    pledges: Any = None


class RunRecord(_WireModel):
    """Immutable, durable snapshot of a finished run."""

    run_id: str
    status: RunStatus
    exit_code: int | None
    created_at: datetime
    completed_at: datetime
    logs_path: str
    config: dict[str, Any]
    contracts: dict[str, ContractSummary] | None = None
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialise to the camelCase JSON shape used on the wire and on disk."""
        payload = self.model_dump(mode="json", by_alias=True)
        payload["createdAt"] = isoformat(self.created_at)
        payload["completedAt"] = isoformat(self.completed_at)
        payload["timestamp"] = payload["completedAt"]
        return payload


@dataclass(slots=True, eq=False)
class Run:
    """Mutable state of one deployment run, owned by the orchestrator."""

    run_id: str
    log_path: Path
    config: dict[str, Any] = field(default_factory=dict)
    status: RunStatus = RunStatus.STARTING
    created_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    exit_code: int | None = None
    error: str | None = None
    record: RunRecord | None = None
    subscribers: set[SubscriberChannel] = field(default_factory=set)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def _transition(self, target: RunStatus) -> None:
        if target not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.run_id, self.status, target)
        self.status = target

    def mark_running(self) -> None:
        """Move ``starting -> running`` once the process has spawned."""
        self._transition(RunStatus.RUNNING)

    def complete(
        self,
        status: RunStatus,
        exit_code: int | None,
        error: str | None,
        completed_at: datetime | None = None,
    ) -> None:
        """Move to a terminal status and stamp ``completed_at`` (exactly once)."""
        if not status.is_terminal:
            raise InvalidTransitionError(self.run_id, self.status, status)
        self._transition(status)
        self.exit_code = exit_code
        self.error = error
        self.completed_at = completed_at or utcnow()

    def snapshot(self) -> dict[str, Any]:
        """Payload of a ``status`` event."""
        return {
            "runId": self.run_id,
            "status": str(self.status),
            "exitCode": self.exit_code,
            "error": self.error,
            "createdAt": isoformat(self.created_at),
            "completedAt": isoformat(self.completed_at),
        }
