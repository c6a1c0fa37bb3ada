"""Shared fixtures for deployrun CLI tests."""

from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from typer.testing import CliRunner

from deployrun.kernel.logging import reset_logging


@pytest.fixture
def runner():
    """Fixture providing a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None, None, None]:
    """Drop sinks bound to the runner's captured streams."""
    yield
    reset_logging()


@pytest.fixture
def config_file(project_root: Path) -> Callable[..., Path]:
    """Write a kind: Config manifest for the temporary project plus its deploy script."""

    def _write(script: str = "exit 0\n") -> Path:
        script_path = project_root / "blockchain_contracts" / "scripts" / "setup_and_deploy.sh"
        script_path.write_text(script, encoding="utf-8")
        path = project_root / "deployrun.yaml"
        path.write_text(
            "kind: Config\n"
            "spec:\n"
            "  project_root: .\n"
            "  log_flush_timeout: 2\n"
            "  run_timeout: 30\n",
            encoding="utf-8",
        )
        return path

    return _write


@pytest.fixture
def history_dir(project_root: Path) -> Path:
    path = project_root / "blockchain_contracts" / "artifacts" / "admin-history"
    path.mkdir(parents=True)
    return path
