"""InputRenderer port: turns a configuration into the file the process reads."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path

    from deployrun.kernel.domain.ballot_config import BallotConfig


@runtime_checkable
class InputFile(Protocol):
    """A rendered, transient input file."""

    path: Path

    async def cleanup(self) -> None:
        """Delete the file. A file that is already gone is not an error."""
        ...


@runtime_checkable
class InputRenderer(Protocol):
    """Port for rendering validated configuration into an input file."""

    @abstractmethod
    async def render(self, config: BallotConfig) -> InputFile:
        """Render ``config`` to a fresh file.

        Args
        ----
            config: Validated deployment configuration.

        Returns
        -------
            Handle to the written file; the orchestrator calls ``cleanup``
            after the run is finalized.
        """
        ...


__all__ = ["InputFile", "InputRenderer"]
