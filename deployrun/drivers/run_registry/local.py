"""In-memory directory of runs seen since process start."""

from __future__ import annotations

import random
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Any

from deployrun.kernel.domain.run import Run
from deployrun.kernel.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = get_logger(__name__)

RUN_ID_PREFIX = "admin-deploy-"


def generate_run_id() -> str:
    """Return a fresh run identifier backed by 128 random bits."""
    try:
        token = str(uuid.uuid4())
    except NotImplementedError:
        # No OS randomness source; fall back to the Mersenne Twister
        token = f"{random.getrandbits(128):032x}"
    return f"{RUN_ID_PREFIX}{token}"


class LocalRunRegistry:
    """Append-only map of run ID to :class:`Run`.

    Lookups after a process restart always miss; durable history is the
    record store's job. With ``max_retained_runs`` set, the oldest terminal
    runs are evicted once the cap is exceeded. Active runs are never evicted.

    Parameters
    ----------
    log_dir : Path
        Directory holding each run's ``<run_id>.log`` transcript
    max_retained_runs : int | None
        Cap on the number of runs kept; None keeps every run
    """

    def __init__(self, log_dir: Path, max_retained_runs: int | None = None) -> None:
        self._log_dir = log_dir
        self._max_retained = max_retained_runs
        self._runs: dict[str, Run] = {}

    def create(self, run_id: str | None = None, config: dict[str, Any] | None = None) -> Run:
        """Register a new run in ``starting`` status.

        Raises
        ------
        ValueError
            If ``run_id`` was already used in this process
        """
        run_id = run_id or generate_run_id()
        if run_id in self._runs:
            msg = f"Run ID already registered: {run_id}"
            raise ValueError(msg)

        run = Run(
            run_id=run_id,
            log_path=self._log_dir / f"{run_id}.log",
            config=dict(config or {}),
        )
        self._runs[run_id] = run
        self._evict()
        logger.debug("Registered run {run_id}", run_id=run_id)
        return run

    def get(self, run_id: str) -> Run | None:
        return self._runs.get(run_id)

    def __contains__(self, run_id: object) -> bool:
        return run_id in self._runs

    def __len__(self) -> int:
        return len(self._runs)

    def __iter__(self) -> Iterator[Run]:
        return iter(list(self._runs.values()))

    def _evict(self) -> None:
        if self._max_retained is None or len(self._runs) <= self._max_retained:
            return
        # dict preserves insertion order, so the first terminal runs are the oldest
        excess = len(self._runs) - self._max_retained
        for run_id in [r.run_id for r in self._runs.values() if r.is_terminal][:excess]:
            evicted = self._runs.pop(run_id)
            for channel in tuple(evicted.subscribers):
                channel.close()
            evicted.subscribers.clear()
            logger.debug("Evicted run {run_id} from registry", run_id=run_id)


__all__ = ["RUN_ID_PREFIX", "LocalRunRegistry", "generate_run_id"]
