"""Tests for FileRunRecordStore."""

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from deployrun.drivers.record_store.filesystem import LATEST_SUCCESS_FILE, FileRunRecordStore
from deployrun.kernel.domain.run import RunRecord, RunStatus
from deployrun.kernel.exceptions import PersistenceError
from deployrun.kernel.ports.run_record_store import RunRecordStore, SupportsRunHistory

_BASE = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)


def _record(run_id: str, minutes: int = 0, status: RunStatus = RunStatus.SUCCESS) -> RunRecord:
    return RunRecord(
        run_id=run_id,
        status=status,
        exit_code=0 if status is RunStatus.SUCCESS else 1,
        created_at=_BASE,
        completed_at=_BASE + timedelta(minutes=minutes),
        logs_path=f"history/{run_id}.log",
        config={"ballotId": run_id},
    )


class TestProtocol:
    def test_satisfies_ports(self, tmp_path: Path) -> None:
        store = FileRunRecordStore(tmp_path)
        assert isinstance(store, RunRecordStore)
        assert isinstance(store, SupportsRunHistory)


class TestSave:
    @pytest.mark.asyncio()
    async def test_writes_camel_case_json(self, tmp_path: Path) -> None:
        store = FileRunRecordStore(tmp_path / "history")
        await store.save(_record("admin-deploy-1"))

        data = json.loads((tmp_path / "history" / "admin-deploy-1.json").read_text())
        assert data["runId"] == "admin-deploy-1"
        assert data["status"] == "success"
        assert data["completedAt"] == "2024-05-01T09:00:00Z"
        assert data["config"] == {"ballotId": "admin-deploy-1"}

    @pytest.mark.asyncio()
    async def test_rejects_empty_run_id(self, tmp_path: Path) -> None:
        with pytest.raises(PersistenceError, match="runId"):
            await FileRunRecordStore(tmp_path).save(_record(""))

    @pytest.mark.asyncio()
    async def test_write_failure_is_persistence_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        with pytest.raises(PersistenceError):
            await FileRunRecordStore(blocker).save(_record("admin-deploy-1"))


class TestLatestSuccess:
    @pytest.mark.asyncio()
    async def test_missing_returns_none(self, tmp_path: Path) -> None:
        assert await FileRunRecordStore(tmp_path).load_latest_success() is None

    @pytest.mark.asyncio()
    async def test_round_trip_adds_recorded_at(self, tmp_path: Path) -> None:
        store = FileRunRecordStore(tmp_path)
        await store.save_latest_success({"ballotId": "b1", "title": "T"})

        latest = await store.load_latest_success()
        assert latest is not None
        assert latest["ballotId"] == "b1"
        assert latest["recordedAt"].endswith("Z")

    @pytest.mark.asyncio()
    async def test_later_save_overwrites(self, tmp_path: Path) -> None:
        store = FileRunRecordStore(tmp_path)
        await store.save_latest_success({"ballotId": "b1"})
        await store.save_latest_success({"ballotId": "b2"})
        latest = await store.load_latest_success()
        assert latest is not None
        assert latest["ballotId"] == "b2"

    @pytest.mark.asyncio()
    async def test_corrupt_file_is_persistence_error(self, tmp_path: Path) -> None:
        (tmp_path / LATEST_SUCCESS_FILE).write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError, match="Invalid JSON"):
            await FileRunRecordStore(tmp_path).load_latest_success()


class TestHistory:
    @pytest.mark.asyncio()
    async def test_load_by_id(self, tmp_path: Path) -> None:
        store = FileRunRecordStore(tmp_path)
        await store.save(_record("admin-deploy-1"))
        loaded = await store.load("admin-deploy-1")
        assert loaded is not None
        assert loaded["runId"] == "admin-deploy-1"
        assert await store.load("admin-deploy-2") is None

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("run_id", ["", "../etc/passwd", "a/b"])
    async def test_load_rejects_path_like_ids(self, tmp_path: Path, run_id: str) -> None:
        assert await FileRunRecordStore(tmp_path).load(run_id) is None

    @pytest.mark.asyncio()
    async def test_list_newest_first_without_latest_file(self, tmp_path: Path) -> None:
        store = FileRunRecordStore(tmp_path)
        await store.save(_record("admin-deploy-old", minutes=1))
        await store.save(_record("admin-deploy-new", minutes=5, status=RunStatus.FAILED))
        await store.save(_record("admin-deploy-mid", minutes=3))
        await store.save_latest_success({"ballotId": "b"})

        records = await store.list_records()
        assert [r["runId"] for r in records] == [
            "admin-deploy-new",
            "admin-deploy-mid",
            "admin-deploy-old",
        ]

    @pytest.mark.asyncio()
    async def test_list_respects_limit_and_skips_corrupt(self, tmp_path: Path) -> None:
        store = FileRunRecordStore(tmp_path)
        for i in range(4):
            await store.save(_record(f"admin-deploy-{i}", minutes=i))
        (tmp_path / "broken.json").write_text("{", encoding="utf-8")

        records = await store.list_records(limit=2)
        assert [r["runId"] for r in records] == ["admin-deploy-3", "admin-deploy-2"]

    @pytest.mark.asyncio()
    async def test_list_missing_directory(self, tmp_path: Path) -> None:
        assert await FileRunRecordStore(tmp_path / "nope").list_records() == []
