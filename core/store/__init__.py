"""
Module 03 - Local Record Store

Per-subject records plus the cached accumulator, persisted as two
whole-file JSON units.
"""
from .record_store import (
    ACCUMULATOR_FILE,
    RECORDS_FILE,
    LocalRecordStore,
)

__all__ = [
    "ACCUMULATOR_FILE",
    "RECORDS_FILE",
    "LocalRecordStore",
]
