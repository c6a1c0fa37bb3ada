"""Process-wide exclusivity guard for deployment runs."""

from __future__ import annotations

import threading


class RunLock:
    """Non-blocking mutual exclusion: at most one run may be in flight.

    The lock is held from the moment a run is accepted until its finalizer
    has completed, not merely while the process executes. Acquisition never
    waits; callers that lose the race get ``False`` and report busy.
    """

    __slots__ = ("_guard", "_held", "_owner")

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._held = False
        self._owner: str | None = None

    def try_acquire(self, owner: str | None = None) -> bool:
        """Take the lock if it is free.

        Args
        ----
            owner: Optional label (a run ID) kept for diagnostics.

        Returns
        -------
            True if the caller now holds the lock.
        """
        with self._guard:
            if self._held:
                return False
            self._held = True
            self._owner = owner
            return True

    def assign(self, owner: str) -> None:
        """Record which run holds the lock once its ID is known."""
        with self._guard:
            if self._held:
                self._owner = owner

    def release(self) -> None:
        """Free the lock. Releasing a free lock is a no-op."""
        with self._guard:
            self._held = False
            self._owner = None

    @property
    def locked(self) -> bool:
        return self._held

    @property
    def owner(self) -> str | None:
        return self._owner

    def __repr__(self) -> str:
        state = f"held by {self._owner!r}" if self._held else "free"
        return f"<RunLock {state}>"
