"""Tests for deployrun.cli.commands.runs_cmd module."""

import json

import yaml

from deployrun.cli.main import app

QUIET = ["--log-level", "error"]


def _write_record(history_dir, run_id, status, completed_at, exit_code=0, error=None):
    record = {
        "runId": run_id,
        "status": status,
        "exitCode": exit_code,
        "createdAt": completed_at,
        "completedAt": completed_at,
        "logsPath": f"blockchain_contracts/artifacts/admin-history/{run_id}.log",
        "config": {"ballotId": "ballot-2024"},
        "contracts": None,
        "error": error,
    }
    (history_dir / f"{run_id}.json").write_text(json.dumps(record), encoding="utf-8")


class TestLatest:
    """Test the latest command."""

    def test_missing_latest_exits_1(self, runner, config_file):
        result = runner.invoke(app, ["latest", "--config", str(config_file())])
        assert result.exit_code == 1
        assert "No successful deployment" in result.output

    def test_prints_latest_config(self, runner, config_file, history_dir):
        (history_dir / "latest-success.json").write_text(
            json.dumps({"ballotId": "ballot-2024", "recordedAt": "2024-05-01T00:00:00Z"}),
            encoding="utf-8",
        )
        result = runner.invoke(app, [*QUIET, "--json", "latest", "--config", str(config_file())])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["ballotId"] == "ballot-2024"

    def test_corrupt_latest_exits_1(self, runner, config_file, history_dir):
        (history_dir / "latest-success.json").write_text("{oops", encoding="utf-8")
        result = runner.invoke(app, ["latest", "--config", str(config_file())])
        assert result.exit_code == 1

    def test_missing_config_file(self, runner, tmp_path):
        result = runner.invoke(app, ["latest", "--config", str(tmp_path / "nope.yaml")])
        assert result.exit_code != 0


class TestHistory:
    """Test the history command."""

    def test_empty_history(self, runner, config_file):
        result = runner.invoke(app, ["history", "--config", str(config_file())])
        assert result.exit_code == 0
        assert "No runs recorded" in result.output

    def test_table_output(self, runner, config_file, history_dir):
        _write_record(history_dir, "admin-deploy-1", "success", "2024-05-01T10:00:00Z")
        result = runner.invoke(app, ["history", "--config", str(config_file())])
        assert result.exit_code == 0
        assert "Status" in result.output

    def test_json_output_newest_first(self, runner, config_file, history_dir):
        _write_record(history_dir, "admin-deploy-old", "success", "2024-05-01T10:00:00Z")
        _write_record(
            history_dir,
            "admin-deploy-new",
            "failed",
            "2024-05-02T10:00:00Z",
            exit_code=1,
            error="Deployment process exited with code 1",
        )
        (history_dir / "latest-success.json").write_text('{"ballotId": "x"}', encoding="utf-8")

        result = runner.invoke(app, [*QUIET, "--json", "history", "--config", str(config_file())])
        assert result.exit_code == 0
        records = json.loads(result.stdout)
        assert [r["runId"] for r in records] == ["admin-deploy-new", "admin-deploy-old"]

    def test_limit(self, runner, config_file, history_dir):
        for day in range(1, 4):
            completed = f"2024-05-0{day}T00:00:00Z"
            _write_record(history_dir, f"admin-deploy-{day}", "success", completed)
        args = [*QUIET, "--json", "history", "-n", "2", "-c", str(config_file())]
        result = runner.invoke(app, args)
        assert result.exit_code == 0
        assert [r["runId"] for r in json.loads(result.stdout)] == [
            "admin-deploy-3",
            "admin-deploy-2",
        ]

    def test_yaml_output(self, runner, config_file, history_dir):
        _write_record(history_dir, "admin-deploy-1", "success", "2024-05-01T10:00:00Z")
        result = runner.invoke(app, [*QUIET, "--yaml", "history", "-c", str(config_file())])
        assert result.exit_code == 0
        assert yaml.safe_load(result.stdout)[0]["runId"] == "admin-deploy-1"


class TestShow:
    """Test the show command."""

    def test_show_record(self, runner, config_file, history_dir):
        _write_record(history_dir, "admin-deploy-1", "success", "2024-05-01T10:00:00Z")
        args = [*QUIET, "--json", "show", "admin-deploy-1", "-c", str(config_file())]
        result = runner.invoke(app, args)
        assert result.exit_code == 0
        assert json.loads(result.stdout)["status"] == "success"

    def test_unknown_run(self, runner, config_file):
        result = runner.invoke(app, ["show", "admin-deploy-missing", "-c", str(config_file())])
        assert result.exit_code == 1
        assert "not found" in result.output
