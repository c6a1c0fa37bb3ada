"""Run registry drivers."""

from deployrun.drivers.run_registry.local import LocalRunRegistry, generate_run_id

__all__ = ["LocalRunRegistry", "generate_run_id"]
