"""Run record store drivers."""

from deployrun.drivers.record_store.filesystem import FileRunRecordStore

__all__ = ["FileRunRecordStore"]
