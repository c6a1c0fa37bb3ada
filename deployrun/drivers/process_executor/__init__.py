"""Process executor drivers."""

from deployrun.drivers.process_executor.local import ExecutionOutcome, LocalProcessExecutor
from deployrun.drivers.process_executor.log_sink import LogSink

__all__ = ["ExecutionOutcome", "LocalProcessExecutor", "LogSink"]
