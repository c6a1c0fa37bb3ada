"""Loguru-based logging for deployrun.

Modules log through :func:`get_logger`, which binds the module name into
``extra["module"]``. Run-scoped messages pass the run ID as a format
argument (``logger.info("Run {run_id} ...", run_id=...)``), so the ID also
lands in ``extra`` and in the JSON records.

The first :func:`get_logger` call installs a default stderr sink, honouring
``DEPLOYRUN_LOG_LEVEL`` and ``DEPLOYRUN_LOG_FORMAT``. The server and CLI
replace it with :func:`configure_logging`.

Examples
--------
>>> from deployrun.kernel.logging import get_logger
>>> logger = get_logger(__name__)
>>> logger.info("Run {run_id} accepted", run_id="admin-deploy-1")
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import suppress
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger
from rich.logging import RichHandler

if TYPE_CHECKING:
    import types

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["console", "json", "structured", "rich"]

# loguru.Logger is only importable for type checkers
Logger = Any

_TIME = "{time:YYYY-MM-DD HH:mm:ss}"

# Message templates per text format, without the leading timestamp
_TEMPLATES: dict[str, str] = {
    "console": "{level: <8} | {extra[module]} | {message}",
    "structured": (
        "[<level>{level: <8}</level>]"
        "<cyan>{extra[module]}:{function}:{line}</cyan> | <level>{message}</level>"
    ),
}

_CURRENT_CONFIG: dict | None = None
_HANDLER_IDS: list[int] = []


def _stderr_sink(format: LogFormat, use_color: bool, include_timestamp: bool) -> dict[str, Any]:
    """Keyword arguments for ``logger.add`` describing the primary sink."""
    if format == "rich":
        handler = RichHandler(
            rich_tracebacks=True,
            markup=False,
            show_time=include_timestamp,
            show_path=True,
        )
        return {"sink": handler, "format": "{message}"}
    if format == "json":
        return {"sink": sys.stderr, "serialize": True}

    template = _TEMPLATES.get(format, _TEMPLATES["console"])
    colorize = format == "structured" and use_color and sys.stderr.isatty()
    if include_timestamp:
        stamp = f"<green>{_TIME}</green>" if format == "structured" else _TIME
        template = f"{stamp} {template}"
    return {"sink": sys.stderr, "format": template, "colorize": colorize}


def _remove_own_handlers() -> None:
    # Sinks added by others (pytest's caplog, test recorders) stay in place
    while _HANDLER_IDS:
        with suppress(ValueError):
            logger.remove(_HANDLER_IDS.pop())


def configure_logging(
    level: LogLevel = "INFO",
    format: LogFormat = "structured",
    output_file: str | Path | None = None,
    use_color: bool = True,
    include_timestamp: bool = True,
    force_reconfigure: bool = False,
    enable_stdlib_bridge: bool = False,
    backtrace: bool = True,
    diagnose: bool = False,
) -> None:
    """Install deployrun's log sinks.

    Repeating a call with identical arguments keeps the existing sinks.

    Parameters
    ----------
    level : LogLevel, default="INFO"
        Minimum level for every sink
    format : LogFormat, default="structured"
        ``console`` plain lines, ``json`` serialized records,
        ``structured`` colored lines with call site, ``rich`` RichHandler
    output_file : str | Path | None, default=None
        Extra sink receiving serialized records, rotated at 10 MB
    use_color : bool, default=True
        Colorize the structured format when stderr is a TTY
    include_timestamp : bool, default=True
        Prefix text formats with the record time
    force_reconfigure : bool, default=False
        Reinstall sinks even when the arguments did not change
    enable_stdlib_bridge : bool, default=False
        Forward stdlib ``logging`` records (uvicorn, asyncio) into Loguru
    backtrace : bool, default=True
        Extend tracebacks past the catching frame
    diagnose : bool, default=False
        Show variable values in tracebacks
    """
    global _CURRENT_CONFIG

    requested = {
        "level": level,
        "format": format,
        "output_file": str(output_file) if output_file else None,
        "use_color": use_color,
        "include_timestamp": include_timestamp,
        "enable_stdlib_bridge": enable_stdlib_bridge,
        "backtrace": backtrace,
        "diagnose": diagnose,
    }
    if requested == _CURRENT_CONFIG and not force_reconfigure:
        return

    _remove_own_handlers()
    # Unbound records still need extra[module] for the text templates
    logger.configure(extra={"module": "-"})

    common = {"level": level, "backtrace": backtrace, "diagnose": diagnose}
    _HANDLER_IDS.append(
        logger.add(**_stderr_sink(format, use_color, include_timestamp), **common)
    )

    if output_file:
        path = Path(output_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        _HANDLER_IDS.append(
            logger.add(path, serialize=True, rotation="10 MB", retention="1 week", **common)
        )

    if enable_stdlib_bridge:
        enable_stdlib_logging_bridge()

    _CURRENT_CONFIG = requested


@lru_cache(maxsize=256)
def get_logger(name: str) -> Logger:
    """Return the shared Loguru logger bound with ``module=name``."""
    _ensure_configured()
    return logger.bind(module=name)


class _InterceptHandler(logging.Handler):
    """Stdlib handler that re-emits records through Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        level: str | int
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Point Loguru at the caller, not at the logging module internals
        frame: types.FrameType | None = logging.currentframe()
        depth = 0
        while frame is not None and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.bind(module=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def enable_stdlib_logging_bridge() -> None:
    """Route the root stdlib logger into Loguru."""
    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)


def reset_logging() -> None:
    """Remove deployrun's sinks; the next logger use reinstalls the defaults."""
    global _CURRENT_CONFIG

    _remove_own_handlers()
    _CURRENT_CONFIG = None


def _ensure_configured() -> None:
    if _CURRENT_CONFIG is not None:
        return
    level = os.getenv("DEPLOYRUN_LOG_LEVEL", "INFO").upper()
    format_type = os.getenv("DEPLOYRUN_LOG_FORMAT", "structured").lower()
    configure_logging(level=level, format=format_type)  # type: ignore[arg-type]
