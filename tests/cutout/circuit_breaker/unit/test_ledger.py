from __future__ import annotations

from datetime import UTC, datetime

import pytest

from cutout.circuit_breaker.ledger import FailureLedger

pytestmark = pytest.mark.asyncio

_NOW = datetime(2020, 1, 1, tzinfo=UTC)


class _ExplodingAsyncLock:
    async def acquire(self) -> None:
        raise RuntimeError("async acquire failed")

    def release(self) -> None:
        return


async def test_record_failure_sets_timestamp_and_increments() -> None:
    ledger = FailureLedger()

    async with ledger.locked():
        assert ledger.record_failure(_NOW) == 1
        assert ledger.record_failure(_NOW) == 2

    assert ledger.failure_count == 2
    assert ledger.last_failure_at == _NOW


async def test_record_success_clears_history() -> None:
    ledger = FailureLedger()
    async with ledger.locked():
        ledger.record_failure(_NOW)
        ledger.record_success()

    assert ledger.failure_count == 0
    assert ledger.last_failure_at is None


async def test_ledger_uses_thread_lock_path_when_gil_disabled(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(
        "cutout.circuit_breaker.ledger.sys._is_gil_enabled",
        lambda: False,
        raising=False,
    )
    ledger = FailureLedger()

    async with ledger.locked():
        ledger.record_failure(_NOW)

    assert ledger.failure_count == 1
    assert ledger._thread_lock.locked() is False


async def test_ledger_releases_thread_lock_if_async_lock_acquire_fails(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(
        "cutout.circuit_breaker.ledger.sys._is_gil_enabled",
        lambda: False,
        raising=False,
    )
    ledger = FailureLedger()
    ledger._async_lock = _ExplodingAsyncLock()  # type: ignore[assignment]

    with pytest.raises(RuntimeError, match="async acquire failed"):
        async with ledger.locked():
            pass

    assert ledger._thread_lock.locked() is False
