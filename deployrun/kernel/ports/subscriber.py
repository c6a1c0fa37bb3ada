"""Subscriber channel port: one live observer of a run's events."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from deployrun.kernel.orchestration.events import RunEvent


@runtime_checkable
class SubscriberChannel(Protocol):
    """Push endpoint for ``status``, ``log`` and ``result`` events.

    ``push`` must never block: a channel that cannot accept an event returns
    False and is detached by the hub.
    """

    @property
    def closed(self) -> bool:
        """True once the channel will accept no more events."""
        ...

    def push(self, event: RunEvent) -> bool:
        """Deliver an event; return False if delivery failed."""
        ...

    def close(self) -> None:
        """Stop accepting events."""
        ...


__all__ = ["SubscriberChannel"]
