"""Deployment input configuration.

The orchestrator treats the configuration as an opaque snapshot; this model
is what the HTTP layer validates request bodies against before a run is
started.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class BallotProposal(_CamelModel):
    """One proposal and the pledges attached to it."""

    name: NonEmptyStr
    pledges: list[NonEmptyStr] = Field(min_length=1)


class BallotSchedule(_CamelModel):
    opens_at: NonEmptyStr
    closes_at: NonEmptyStr
    announces_at: NonEmptyStr


class BallotConfig(_CamelModel):
    """Validated ballot configuration rendered into the deployment env file."""

    ballot_id: NonEmptyStr
    title: NonEmptyStr
    description: NonEmptyStr
    expected_voters: int = Field(gt=0, strict=True)
    schedule: BallotSchedule
    proposals: list[BallotProposal] = Field(min_length=1)
    mascot_cid: str | None = None
    verifier_address: str | None = None

    def snapshot(self) -> dict[str, Any]:
        """Return the camelCase dict stored in run records."""
        return self.model_dump(by_alias=True, exclude_none=True)
