from __future__ import annotations

import pytest

import cutout.circuit_breaker.breaker as breaker_mod
from tests.cutout.support.fakes import (
    CountingTransport,
    FakeClock,
    RecordingSink,
)


@pytest.fixture
def fake_clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """Provide a controllable clock patched into the breaker module."""
    clock = FakeClock()
    monkeypatch.setattr(breaker_mod, "_utcnow", clock.now)
    return clock


@pytest.fixture
def transport() -> CountingTransport:
    """Provide a fresh counting HTTP transport per test."""
    return CountingTransport()


@pytest.fixture
def sink() -> RecordingSink:
    """Provide a fresh recording analytics sink per test."""
    return RecordingSink()
