"""Run orchestration: events, finalization and the public orchestrator."""

from deployrun.kernel.orchestration.events import (
    LogEvent,
    ResultEvent,
    RunEvent,
    StatusEvent,
    format_sse,
    sse_preamble,
)
from deployrun.kernel.orchestration.finalizer import RunFinalizer


def __getattr__(name: str) -> object:
    """Lazy import of the orchestrator (its drivers import this package's events)."""
    if name == "DeploymentOrchestrator":
        from deployrun.kernel.orchestration.orchestrator import DeploymentOrchestrator

        return DeploymentOrchestrator
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "DeploymentOrchestrator",
    "LogEvent",
    "ResultEvent",
    "RunEvent",
    "RunFinalizer",
    "StatusEvent",
    "format_sse",
    "sse_preamble",
]
