"""
Module 05B - Rebuild Lock

The accumulator is one global resource touched by every approval and
revocation. RebuildLock is its single mutual-exclusion domain:

- exclusive: enumerate records -> build -> persist snapshot -> publish,
  plus submit, reload and the final verified-status write
- shared: verify's reconcile-and-prepare phase; many verifiers may hold
  it at once but never while a rebuild holds it exclusively

Waiting writers block new readers so rebuilds are not starved.
Not reentrant.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class RebuildLock:
    """Shared/exclusive lock guarding the accumulator."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_shared(self) -> None:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_shared(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_shared without a matching acquire")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_exclusive(self) -> None:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_exclusive(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_exclusive without a matching acquire")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def shared(self) -> Iterator[None]:
        self.acquire_shared()
        try:
            yield
        finally:
            self.release_shared()

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        self.acquire_exclusive()
        try:
            yield
        finally:
            self.release_exclusive()

    @property
    def is_exclusive(self) -> bool:
        return self._writer

    @property
    def reader_count(self) -> int:
        return self._readers


__all__ = ["RebuildLock"]
