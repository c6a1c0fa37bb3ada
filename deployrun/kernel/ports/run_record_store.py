"""RunRecordStore port: durable history of finished runs.

Adapters
--------
- ``FileRunRecordStore``: JSON files in a history directory.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from deployrun.kernel.domain.run import RunRecord


@runtime_checkable
class RunRecordStore(Protocol):
    """Port for persisting run records and the latest successful configuration.

    Failures raised by implementations are logged by the finalizer and never
    block a run from reaching its terminal state.
    """

    @abstractmethod
    async def save(self, record: RunRecord) -> None:
        """Persist a finalized run record.

        Raises
        ------
        PersistenceError
            If the record cannot be written
        """
        ...

    @abstractmethod
    async def save_latest_success(self, config: dict[str, Any]) -> None:
        """Persist the configuration of the most recent successful run."""
        ...

    @abstractmethod
    async def load_latest_success(self) -> dict[str, Any] | None:
        """Return the latest successful configuration, or None if there is none."""
        ...


@runtime_checkable
class SupportsRunHistory(Protocol):
    """Optional capability: read back stored run records."""

    async def load(self, run_id: str) -> dict[str, Any] | None:
        """Return a stored record by run ID, or None."""
        ...

    async def list_records(self, limit: int = 50) -> list[dict[str, Any]]:
        """Return stored records, newest first."""
        ...


__all__ = ["RunRecordStore", "SupportsRunHistory"]
