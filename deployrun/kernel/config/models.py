"""Configuration data models for deployrun."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from deployrun.kernel.exceptions import ConfigurationError


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Logging configuration.

    Attributes
    ----------
    level : str, default="INFO"
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    format : str, default="structured"
        Output format (console, json, structured, rich)
    output_file : str | None, default=None
        Optional file path that also receives JSON records
    use_color : bool, default=True
        Use ANSI color codes (auto-disabled for non-TTY)
    enable_stdlib_bridge : bool, default=True
        Route uvicorn and other stdlib loggers through Loguru

    Examples
    --------
    TOML configuration:

    ```toml
    [tool.deployrun.logging]
    level = "DEBUG"
    format = "rich"
    ```

    Environment variable overrides:

    ```bash
    export DEPLOYRUN_LOG_LEVEL=DEBUG
    export DEPLOYRUN_LOG_FORMAT=json
    ```
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "structured", "rich"] = "structured"
    output_file: str | None = None
    use_color: bool = True
    enable_stdlib_bridge: bool = True


@dataclass(frozen=True, slots=True)
class DeployRunConfig:
    """Complete orchestrator configuration.

    Relative paths resolve against ``project_root``.

    Attributes
    ----------
    project_root : Path
        Base directory; run records store log paths relative to it
    contracts_dir : Path
        Working directory of the deployment process
    command : tuple[str, ...]
        Argv of the deployment process, relative to ``contracts_dir``
    input_env_var : str
        Environment variable carrying the rendered input file path
    history_dir : Path
        Directory for run logs, run records and ``latest-success.json``
    tmp_dir : Path
        Directory for transient rendered input files
    template_path : Path
        Env template rendered for each run
    artifact_path : Path
        Result artifact the process may write before exiting
    log_flush_timeout : float
        Seconds to wait for the log sink to drain during finalization
    run_timeout : float | None
        Seconds before a running process is terminated; None disables it
    kill_grace_period : float
        Seconds between SIGTERM and SIGKILL on timeout
    subscriber_queue_size : int
        Per-subscriber event buffer; a full buffer detaches the subscriber
    max_retained_runs : int | None
        Cap on terminal runs kept in memory; None keeps every run
    retry_interval_ms : int
        Reconnect hint sent to SSE clients on attach
    admin_token : str | None
        Shared secret required by the HTTP routes
    cors_origins : tuple[str, ...]
        Allowed CORS origins for the HTTP server

    Examples
    --------
    TOML configuration in pyproject.toml:

    ```toml
    [tool.deployrun]
    project_root = "."
    command = ["bash", "scripts/setup_and_deploy.sh"]
    run_timeout = 1800
    max_retained_runs = 200
    admin_token = "${ADMIN_DEPLOY_TOKEN}"
    ```
    """

    project_root: Path = field(default_factory=Path.cwd)
    contracts_dir: Path = Path("blockchain_contracts")
    command: tuple[str, ...] = ("bash", "scripts/setup_and_deploy.sh")
    input_env_var: str = "DEPLOY_ENV_FILE"
    history_dir: Path = Path("blockchain_contracts/artifacts/admin-history")
    tmp_dir: Path = Path("blockchain_contracts/tmp")
    template_path: Path = Path("blockchain_contracts/deploy.templates.env")
    artifact_path: Path = Path("blockchain_contracts/artifacts/sbt_deployment.json")
    log_flush_timeout: float = 5.0
    run_timeout: float | None = None
    kill_grace_period: float = 5.0
    subscriber_queue_size: int = 1000
    max_retained_runs: int | None = None
    retry_interval_ms: int = 10000
    admin_token: str | None = None
    cors_origins: tuple[str, ...] = ("*",)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self) -> None:
        """Validate tuning values.

        Raises
        ------
        ConfigurationError
            If a value is out of range
        """
        if not self.command:
            raise ConfigurationError("command", "must contain at least one element")
        if not self.input_env_var:
            raise ConfigurationError("input_env_var", "cannot be empty")
        if self.log_flush_timeout <= 0:
            raise ConfigurationError("log_flush_timeout", "must be positive")
        if self.run_timeout is not None and self.run_timeout <= 0:
            raise ConfigurationError("run_timeout", "must be positive or unset")
        if self.kill_grace_period < 0:
            raise ConfigurationError("kill_grace_period", "cannot be negative")
        if self.subscriber_queue_size < 1:
            raise ConfigurationError("subscriber_queue_size", "must be at least 1")
        if self.max_retained_runs is not None and self.max_retained_runs < 1:
            raise ConfigurationError("max_retained_runs", "must be at least 1 or unset")

    def resolve(self, path: Path) -> Path:
        """Resolve a configured path against ``project_root``."""
        return path if path.is_absolute() else self.project_root / path

    @property
    def contracts_path(self) -> Path:
        return self.resolve(self.contracts_dir)

    @property
    def history_path(self) -> Path:
        return self.resolve(self.history_dir)

    @property
    def tmp_path(self) -> Path:
        return self.resolve(self.tmp_dir)

    @property
    def template_file(self) -> Path:
        return self.resolve(self.template_path)

    @property
    def artifact_file(self) -> Path:
        return self.resolve(self.artifact_path)
