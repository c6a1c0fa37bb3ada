"""Domain models for deployrun."""

from deployrun.kernel.domain.ballot_config import BallotConfig, BallotProposal, BallotSchedule
from deployrun.kernel.domain.run import ContractSummary, Run, RunRecord, RunStatus

__all__ = [
    "BallotConfig",
    "BallotProposal",
    "BallotSchedule",
    "ContractSummary",
    "Run",
    "RunRecord",
    "RunStatus",
]
