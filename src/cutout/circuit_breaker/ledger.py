"""Failure history owned by one circuit breaker.

The ledger stores only the failure count and the last failure timestamp. The
circuit state is never stored: it is derived from these two fields on every
evaluation.

State lives in process memory only and is not shared across processes.
"""

import asyncio
import sys
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime


class FailureLedger:
    """Failure counters guarded by a cooperative + optional thread lock."""

    def __init__(self) -> None:
        """Initialize an empty failure history."""
        self._failure_count = 0
        self._last_failure_at: datetime | None = None
        self._async_lock = asyncio.Lock()
        self._thread_lock = threading.Lock()
        is_gil_enabled = getattr(sys, "_is_gil_enabled", None)
        self._gil_enabled = True if is_gil_enabled is None else bool(is_gil_enabled())

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def last_failure_at(self) -> datetime | None:
        return self._last_failure_at

    @asynccontextmanager
    async def locked(self) -> AsyncIterator[None]:
        """Hold exclusive access to the ledger for one bookkeeping step."""
        if self._gil_enabled:
            await self._async_lock.acquire()
            try:
                yield
            finally:
                self._async_lock.release()
            return

        self._thread_lock.acquire()
        try:
            await self._async_lock.acquire()
        except Exception:
            self._thread_lock.release()
            raise
        try:
            yield
        finally:
            self._async_lock.release()
            self._thread_lock.release()

    def record_success(self) -> None:
        """Clear failure history. Callers must hold ``locked()``."""
        self._failure_count = 0
        self._last_failure_at = None

    def record_failure(self, now: datetime) -> int:
        """Record one failure at ``now`` and return the new failure count.

        Callers must hold ``locked()``.
        """
        self._last_failure_at = now
        self._failure_count += 1
        return self._failure_count
