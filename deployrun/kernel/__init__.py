"""deployrun kernel: domain types, ports, configuration and errors.

Drivers, the server and the CLI import from here or from kernel
submodules. The orchestrator lives in :mod:`deployrun.kernel.orchestration`
and is not re-exported here because it depends on the local drivers.
"""

from deployrun.kernel.config import DeployRunConfig, LoggingConfig
from deployrun.kernel.domain import (
    BallotConfig,
    BallotProposal,
    BallotSchedule,
    ContractSummary,
    Run,
    RunRecord,
    RunStatus,
)
from deployrun.kernel.exceptions import (
    ArtifactUnavailable,
    ConfigurationError,
    DeploymentBusyError,
    DeployRunError,
    InvalidTransitionError,
    PersistenceError,
    RunNotFoundError,
    RunTimeoutError,
    SpawnFailure,
    StreamFailure,
)
from deployrun.kernel.logging import configure_logging, get_logger
from deployrun.kernel.ports import (
    InputFile,
    InputRenderer,
    RunRecordStore,
    SubscriberChannel,
    SupportsRunHistory,
)
from deployrun.kernel.run_lock import RunLock

__all__ = [
    # Domain
    "BallotConfig",
    "BallotProposal",
    "BallotSchedule",
    "ContractSummary",
    "Run",
    "RunRecord",
    "RunStatus",
    # Configuration
    "DeployRunConfig",
    "LoggingConfig",
    # Ports
    "InputFile",
    "InputRenderer",
    "RunRecordStore",
    "SubscriberChannel",
    "SupportsRunHistory",
    # Concurrency
    "RunLock",
    # Exceptions
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
    # Logging
    "configure_logging",
    "get_logger",
]
