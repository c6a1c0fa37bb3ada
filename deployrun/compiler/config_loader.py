"""Configuration loader for deployrun.

Two sources are understood:

1. A ``kind: Config`` YAML manifest whose ``spec`` mapping holds the
   settings, given explicitly or through ``DEPLOYRUN_CONFIG_PATH``.
2. A ``[tool.deployrun]`` table in ``pyproject.toml``, discovered from the
   working directory upwards.

String values may reference the environment as ``${VAR}``. A relative
``project_root`` is taken relative to the file that declares it; every
other relative path is relative to ``project_root``.
"""

from __future__ import annotations

import os
import re
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

import yaml

from deployrun.kernel.config.models import DeployRunConfig, LoggingConfig
from deployrun.kernel.exceptions import ConfigurationError
from deployrun.kernel.logging import get_logger

logger = get_logger(__name__)

CONFIG_PATH_ENV = "DEPLOYRUN_CONFIG_PATH"
TOKEN_ENV = "ADMIN_DEPLOY_TOKEN"

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")

_BOOL_WORDS = {
    **dict.fromkeys(("true", "1", "yes", "on", "enabled"), True),
    **dict.fromkeys(("false", "0", "no", "off", "disabled"), False),
}

_PATH_KEYS = ("contracts_dir", "history_dir", "tmp_dir", "template_path", "artifact_path")
_NUMERIC_KEYS: dict[str, type[int] | type[float]] = {
    "log_flush_timeout": float,
    "run_timeout": float,
    "kill_grace_period": float,
    "subscriber_queue_size": int,
    "max_retained_runs": int,
    "retry_interval_ms": int,
}


def _parse_bool_env(value: str) -> bool:
    """Interpret an environment flag such as ``on`` or ``0``.

    Raises
    ------
    ValueError
        If the word is not a known boolean spelling
    """
    try:
        return _BOOL_WORDS[value.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Invalid boolean value: {value!r}. Expected one of: {sorted(_BOOL_WORDS)}"
        ) from None


def _expand_placeholders(value: Any) -> Any:
    """Substitute ``${VAR}`` in every string of a nested structure.

    Unknown variables are left as written so callers can detect them.
    """
    if isinstance(value, dict):
        return {key: _expand_placeholders(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_placeholders(item) for item in value]
    if not isinstance(value, str):
        return value

    def lookup(match: re.Match[str]) -> str:
        resolved = os.environ.get(match.group(1))
        if resolved is None:
            logger.debug("Environment variable {name} is not set", name=match.group(1))
            return match.group(0)
        return resolved

    return _PLACEHOLDER.sub(lookup, value)


@lru_cache(maxsize=32)
def _load_and_parse_cached(path_str: str) -> DeployRunConfig:
    return ConfigLoader()._load_and_parse(Path(path_str))


class ConfigLoader:
    """Reads deployrun settings from a manifest or ``pyproject.toml``."""

    def load_config_file(self, path: str | Path | None = None) -> DeployRunConfig:
        """Locate, read and validate a configuration file.

        Parameters
        ----------
        path : str | Path | None
            Explicit file; None walks the discovery order

        Returns
        -------
        DeployRunConfig
            Parsed configuration, cached per absolute path
        """
        return _load_and_parse_cached(str(self._find_config_file(path).absolute()))

    def _find_config_file(self, path: str | Path | None) -> Path:
        """Resolve the file to read.

        Order: explicit ``path``, then ``DEPLOYRUN_CONFIG_PATH``, then the
        nearest ``pyproject.toml`` carrying ``[tool.deployrun]``.

        Raises
        ------
        FileNotFoundError
            If nothing suitable exists
        """
        if path:
            explicit = Path(path)
            if not explicit.exists():
                raise FileNotFoundError(f"Configuration file not found: {explicit}")
            return explicit

        if env_path := os.getenv(CONFIG_PATH_ENV):
            candidate = Path(env_path)
            if candidate.exists():
                return candidate
            logger.warning(
                "{var} points at a missing file: {path}", var=CONFIG_PATH_ENV, path=env_path
            )

        cwd = Path.cwd()
        for directory in (cwd, *cwd.parents):
            pyproject = directory / "pyproject.toml"
            if pyproject.is_file() and "deployrun" in self._read_toml(pyproject).get("tool", {}):
                return pyproject

        raise FileNotFoundError(
            "No configuration file found. Provide a kind: Config YAML path, "
            f"set {CONFIG_PATH_ENV}, or add [tool.deployrun] to pyproject.toml"
        )

    def _load_and_parse(self, config_path: Path) -> DeployRunConfig:
        logger.info("Loading configuration from {path}", path=config_path)
        if config_path.suffix in (".yaml", ".yml"):
            settings = self._read_manifest(config_path)
        else:
            settings = self._read_tool_table(config_path)
        return self._build(_expand_placeholders(settings), config_path.parent)

    @staticmethod
    def _read_toml(path: Path) -> dict[str, Any]:
        with path.open("rb") as f:
            return tomllib.load(f)

    def _read_manifest(self, path: Path) -> dict[str, Any]:
        """Return the ``spec`` mapping of a YAML manifest.

        Raises
        ------
        ConfigurationError
            If the document is not a ``kind: Config`` mapping
        """
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not isinstance(document, dict):
            raise ConfigurationError(
                path.name, f"expected a mapping, got {type(document).__name__}"
            )
        if document.get("kind") != "Config":
            raise ConfigurationError(
                path.name,
                f"must use 'kind: Config' manifest format, got 'kind: {document.get('kind')}'",
            )
        spec = document.get("spec") or {}
        if not isinstance(spec, dict):
            raise ConfigurationError(path.name, "'spec' must be a mapping")
        return spec

    def _read_tool_table(self, path: Path) -> dict[str, Any]:
        document = self._read_toml(path)
        table = document.get("tool", {}).get("deployrun")
        if table is not None:
            return table
        if path.name == "pyproject.toml":
            logger.warning("No [tool.deployrun] table in {path}, using defaults", path=path)
            return {}
        # A standalone TOML file holds the settings at top level
        return document

    def _build(self, settings: dict[str, Any], base_dir: Path) -> DeployRunConfig:
        """Turn raw settings into a validated :class:`DeployRunConfig`."""
        root = Path(settings.get("project_root", "."))
        options: dict[str, Any] = {
            "project_root": (root if root.is_absolute() else base_dir / root).resolve(),
            "admin_token": self._admin_token(settings.get("admin_token")),
            "logging": self._logging(settings.get("logging") or {}),
        }
        options.update({key: Path(settings[key]) for key in _PATH_KEYS if key in settings})

        if "command" in settings:
            command = settings["command"]
            parts = command.split() if isinstance(command, str) else command
            options["command"] = tuple(str(part) for part in parts)
        if "input_env_var" in settings:
            options["input_env_var"] = str(settings["input_env_var"])
        if "cors_origins" in settings:
            options["cors_origins"] = tuple(settings["cors_origins"])

        for key, kind in _NUMERIC_KEYS.items():
            if settings.get(key) is None:
                continue
            try:
                options[key] = kind(settings[key])
            except (TypeError, ValueError) as e:
                raise ConfigurationError(key, f"invalid numeric value: {e}") from e

        return DeployRunConfig(**options)

    def _admin_token(self, configured: str | None) -> str | None:
        """The environment wins; an unexpanded ``${VAR}`` counts as unset."""
        if env_token := os.getenv(TOKEN_ENV):
            return env_token
        if not configured or _PLACEHOLDER.fullmatch(configured):
            return None
        return configured

    def _logging(self, section: dict[str, Any]) -> LoggingConfig:
        """Build the logging section; ``DEPLOYRUN_LOG_*`` variables override the file.

        - ``DEPLOYRUN_LOG_LEVEL``
        - ``DEPLOYRUN_LOG_FORMAT``
        - ``DEPLOYRUN_LOG_FILE``
        - ``DEPLOYRUN_LOG_COLOR``
        """
        level = os.getenv("DEPLOYRUN_LOG_LEVEL") or section.get("level", "INFO")
        format_type = os.getenv("DEPLOYRUN_LOG_FORMAT") or section.get("format", "structured")
        use_color = section.get("use_color", True)
        if env_color := os.getenv("DEPLOYRUN_LOG_COLOR"):
            try:
                use_color = _parse_bool_env(env_color)
            except ValueError as e:
                logger.warning("Ignoring DEPLOYRUN_LOG_COLOR: {error}", error=e)

        return LoggingConfig(
            level=cast("Any", str(level).upper()),
            format=cast("Any", str(format_type).lower()),
            output_file=os.getenv("DEPLOYRUN_LOG_FILE") or section.get("output_file"),
            use_color=use_color,
            enable_stdlib_bridge=section.get("enable_stdlib_bridge", True),
        )


def load_config(path: str | Path | None = None) -> DeployRunConfig:
    """Load configuration, falling back to defaults when none is discoverable.

    An explicit ``path`` that does not exist still raises ``FileNotFoundError``.
    """
    try:
        return ConfigLoader().load_config_file(path)
    except FileNotFoundError:
        if path:
            raise
        logger.info("No configuration file found, using defaults")
        return get_default_config()


def clear_config_cache() -> None:
    """Forget parsed files, e.g. after editing them or between tests."""
    _load_and_parse_cached.cache_clear()


def get_default_config() -> DeployRunConfig:
    """Defaults rooted at the current directory."""
    return DeployRunConfig(project_root=Path.cwd(), admin_token=os.getenv(TOKEN_ENV) or None)
