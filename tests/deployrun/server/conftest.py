"""Shared fixtures for deployrun server tests."""

import json
from collections.abc import Callable, Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from deployrun.kernel.config.models import DeployRunConfig
from deployrun.server.main import create_app

TOKEN = "s3cret-token"

QUICK_SCRIPT = """
echo "Compiling contracts"
echo "deprecated option" >&2
echo "Deployed"
"""


def parse_sse(body: str) -> list[tuple[str, dict[str, Any]]]:
    """Split an SSE body into ``(event, data)`` pairs, skipping comments and hints."""
    events: list[tuple[str, dict[str, Any]]] = []
    for block in body.split("\n\n"):
        name, data = None, None
        for line in block.splitlines():
            if line.startswith("event: "):
                name = line.removeprefix("event: ")
            elif line.startswith("data: "):
                data = json.loads(line.removeprefix("data: "))
        if name is not None and data is not None:
            events.append((name, data))
    return events


@pytest.fixture
def sse_events() -> Callable[[str], list[tuple[str, dict[str, Any]]]]:
    return parse_sse


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"x-admin-deploy-token": TOKEN}


@pytest.fixture
def client_factory(
    make_config: Callable[..., DeployRunConfig],
) -> Generator[Callable[..., TestClient], None, None]:
    """Build started TestClients; each is closed (lifespan shutdown) at teardown."""
    clients: list[TestClient] = []

    def _make(script: str = QUICK_SCRIPT, **overrides: Any) -> TestClient:
        overrides.setdefault("admin_token", TOKEN)
        client = TestClient(create_app(make_config(script, **overrides)))
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(client_factory: Callable[..., TestClient]) -> TestClient:
    return client_factory()
