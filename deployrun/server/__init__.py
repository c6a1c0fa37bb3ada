"""HTTP surface for the deployment orchestrator."""

from deployrun.server.main import create_app, run_server

__all__ = ["create_app", "run_server"]
