"""deployrun - single-flight deployment runs with live log streaming.

Accepts a ballot configuration, runs the contract deployment process in
the background, streams its output to any number of observers and keeps
a durable record of every run.
"""

from typing import TYPE_CHECKING, Any

# Version is defined in pyproject.toml and read dynamically
try:
    from importlib.metadata import version

    __version__ = version("deployrun")
except Exception:
    __version__ = "0.0.0.dev0"  # Fallback for source checkouts

from deployrun.compiler import load_config
from deployrun.kernel import (
    BallotConfig,
    DeploymentBusyError,
    DeployRunConfig,
    DeployRunError,
    RunRecord,
    RunStatus,
)

if TYPE_CHECKING:
    from deployrun.kernel.orchestration.orchestrator import DeploymentOrchestrator


def __getattr__(name: str) -> Any:
    """Lazy import of the orchestrator, which pulls in every local driver."""
    if name == "DeploymentOrchestrator":
        from deployrun.kernel.orchestration.orchestrator import DeploymentOrchestrator

        return DeploymentOrchestrator
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "BallotConfig",
    "DeployRunConfig",
    "DeployRunError",
    "DeploymentBusyError",
    "DeploymentOrchestrator",
    "RunRecord",
    "RunStatus",
    "__version__",
    "load_config",
]
