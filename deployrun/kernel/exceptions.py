"""Exception hierarchy for deployrun.

All deployrun exceptions inherit from :class:`DeployRunError`. Only
:class:`DeploymentBusyError` is meant to reach the caller of
``start_run``; the process, stream and persistence errors are recorded on
the run or logged, never raised out of the background task.
"""

from __future__ import annotations

# ============================================================================
# Base Exception
# ============================================================================


class DeployRunError(Exception):
    """Base exception for all deployrun errors."""

    pass


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(DeployRunError):
    """Raised when configuration is invalid or missing.

    Examples
    --------
    Example usage::

        raise ConfigurationError("command", "must contain at least one element")
    """

    def __init__(self, component: str, reason: str) -> None:
        super().__init__(f"Configuration error in '{component}': {reason}")
        self.component = component
        self.reason = reason


# ============================================================================
# Run lifecycle errors
# ============================================================================


class DeploymentBusyError(DeployRunError):
    """Raised by ``start_run`` while another run holds the lock.

    This is an expected, retryable condition rather than a fault.
    """

    code = "DEPLOYMENT_BUSY"

    def __init__(self, message: str = "Deployment already in progress") -> None:
        super().__init__(message)


class RunNotFoundError(DeployRunError):
    """Raised when a run identifier is unknown to the registry."""

    def __init__(self, run_id: str) -> None:
        super().__init__(f"Run '{run_id}' not found")
        self.run_id = run_id


class InvalidTransitionError(DeployRunError):
    """Raised when a run status change would regress or skip a state."""

    def __init__(self, run_id: str, current: str, target: str) -> None:
        super().__init__(f"Run '{run_id}' cannot move from '{current}' to '{target}'")
        self.run_id = run_id
        self.current = current
        self.target = target


class SpawnFailure(DeployRunError):
    """The deployment process could not be started."""

    pass


class StreamFailure(DeployRunError):
    """Reading process output or writing the run log failed."""

    pass


class RunTimeoutError(DeployRunError):
    """The deployment process exceeded the configured run timeout."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Deployment timed out after {timeout:g}s")
        self.timeout = timeout


# ============================================================================
# Persistence errors
# ============================================================================


class PersistenceError(DeployRunError):
    """A run record or the latest successful configuration could not be written."""

    pass


class ArtifactUnavailable(DeployRunError):
    """The deployment result artifact is missing or unparsable."""

    pass


__all__ = [
    "ArtifactUnavailable",
    "ConfigurationError",
    "DeployRunError",
    "DeploymentBusyError",
    "InvalidTransitionError",
    "PersistenceError",
    "RunNotFoundError",
    "RunTimeoutError",
    "SpawnFailure",
    "StreamFailure",
]
