"""CLI command modules for deployrun."""

from deployrun.cli.commands import deploy_cmd, runs_cmd, serve_cmd

__all__ = ["deploy_cmd", "runs_cmd", "serve_cmd"]
