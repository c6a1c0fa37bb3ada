"""Filesystem run record store: one JSON document per run."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiofiles

from deployrun.kernel.domain.run import isoformat, utcnow
from deployrun.kernel.exceptions import PersistenceError
from deployrun.kernel.logging import get_logger

if TYPE_CHECKING:
    from deployrun.kernel.domain.run import RunRecord

logger = get_logger(__name__)

LATEST_SUCCESS_FILE = "latest-success.json"


class FileRunRecordStore:
    """Stores run records and the latest successful config as JSON files.

    Layout::

        <history_dir>/<run_id>.json       # one finalized RunRecord each
        <history_dir>/latest-success.json # config of the last successful run

    Examples
    --------
    Basic usage::

        store = FileRunRecordStore(Path("artifacts/admin-history"))
        await store.save(record)
        config = await store.load_latest_success()
    """

    def __init__(self, history_dir: Path) -> None:
        self._history_dir = Path(history_dir)

    @property
    def history_dir(self) -> Path:
        return self._history_dir

    async def save(self, record: RunRecord) -> None:
        if not record.run_id:
            raise PersistenceError("Deployment record must include a runId")
        target = self._history_dir / f"{record.run_id}.json"
        await self._write_json(target, record.to_payload())
        logger.debug("Saved run record {path}", path=target)

    async def save_latest_success(self, config: dict[str, Any]) -> None:
        payload = {**config, "recordedAt": isoformat(utcnow())}
        await self._write_json(self._history_dir / LATEST_SUCCESS_FILE, payload)

    async def load_latest_success(self) -> dict[str, Any] | None:
        return await self._read_json(self._history_dir / LATEST_SUCCESS_FILE)

    async def load(self, run_id: str) -> dict[str, Any] | None:
        """Return the stored record for ``run_id``, or None."""
        if not run_id or Path(run_id).name != run_id:
            return None
        return await self._read_json(self._history_dir / f"{run_id}.json")

    async def list_records(self, limit: int = 50) -> list[dict[str, Any]]:
        """Return stored records, newest ``completedAt`` first."""
        if not self._history_dir.is_dir():
            return []
        records: list[dict[str, Any]] = []
        for path in self._history_dir.glob("*.json"):
            if path.name == LATEST_SUCCESS_FILE:
                continue
            try:
                data = await self._read_json(path)
            except PersistenceError as e:
                logger.warning("Skipping unreadable record {path}: {error}", path=path, error=e)
                continue
            if data is not None:
                records.append(data)
        records.sort(key=lambda r: r.get("completedAt") or "", reverse=True)
        return records[:limit]

    async def _write_json(self, target: Path, payload: dict[str, Any]) -> None:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(target, mode="w", encoding="utf-8") as f:
                await f.write(json.dumps(payload, indent=2))
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to write {target}: {e}") from e

    async def _read_json(self, path: Path) -> dict[str, Any] | None:
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                content = await f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(f"Failed to read {path}: {e}") from e
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Invalid JSON in {path}: {e}") from e


__all__ = ["LATEST_SUCCESS_FILE", "FileRunRecordStore"]
