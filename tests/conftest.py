"""Shared fixtures for deployrun tests.

Deployment processes are small bash scripts written into a temporary
project laid out like the real one::

    <tmp>/blockchain_contracts/deploy.templates.env
    <tmp>/blockchain_contracts/scripts/setup_and_deploy.sh
"""

from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from deployrun.compiler.config_loader import clear_config_cache
from deployrun.kernel.config.models import DeployRunConfig
from deployrun.kernel.domain.ballot_config import BallotConfig

TEMPLATE = """BALLOT_ID={{ballotId}}
TITLE={{title}}
EXPECTED_VOTERS={{expectedVoters}}
PROPOSALS={{proposals}}
PLEDGES={{pledges}}
MASCOT_CID={{mascotCid}}
"""

_ENV_VARS = (
    "ADMIN_DEPLOY_TOKEN",
    "DEPLOYRUN_CONFIG_PATH",
    "DEPLOYRUN_LOG_LEVEL",
    "DEPLOYRUN_LOG_FORMAT",
    "DEPLOYRUN_LOG_FILE",
    "DEPLOYRUN_LOG_COLOR",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep host environment and cached configs out of every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def ballot_payload() -> dict[str, Any]:
    """A valid camelCase ballot configuration, as the admin UI posts it."""
    return {
        "ballotId": "ballot-2024",
        "title": "Student council",
        "description": "Annual election",
        "expectedVoters": 120,
        "schedule": {
            "opensAt": "2024-05-01T09:00:00Z",
            "closesAt": "2024-05-02T17:00:00Z",
            "announcesAt": "2024-05-03T12:00:00Z",
        },
        "proposals": [
            {"name": "Alice", "pledges": ["Longer lunch", "More clubs"]},
            {"name": "Bob", "pledges": ["Free printing"]},
        ],
        "mascotCid": "bafy-mascot",
    }


@pytest.fixture
def ballot_config(ballot_payload: dict[str, Any]) -> BallotConfig:
    return BallotConfig.model_validate(ballot_payload)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Temporary project with the contracts directory and env template."""
    contracts = tmp_path / "blockchain_contracts"
    (contracts / "scripts").mkdir(parents=True)
    (contracts / "deploy.templates.env").write_text(TEMPLATE, encoding="utf-8")
    return tmp_path


@pytest.fixture
def make_config(project_root: Path) -> Callable[..., DeployRunConfig]:
    """Factory writing the deploy script and returning a config rooted at it."""

    def _make(script: str = "exit 0\n", **overrides: Any) -> DeployRunConfig:
        path = project_root / "blockchain_contracts" / "scripts" / "setup_and_deploy.sh"
        path.write_text(script, encoding="utf-8")
        overrides.setdefault("log_flush_timeout", 2.0)
        return DeployRunConfig(project_root=project_root, **overrides)

    return _make
