"""Ports (interfaces) consumed by the deployment orchestrator."""

from deployrun.kernel.ports.input_renderer import InputFile, InputRenderer
from deployrun.kernel.ports.run_record_store import RunRecordStore, SupportsRunHistory
from deployrun.kernel.ports.subscriber import SubscriberChannel

__all__ = [
    "InputFile",
    "InputRenderer",
    "RunRecordStore",
    "SubscriberChannel",
    "SupportsRunHistory",
]
