"""Configuration models for deployrun."""

from deployrun.kernel.config.models import DeployRunConfig, LoggingConfig

__all__ = [
    "DeployRunConfig",
    "LoggingConfig",
]
