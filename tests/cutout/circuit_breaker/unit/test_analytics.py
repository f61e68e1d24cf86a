from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from cutout.circuit_breaker import Analytics, CallOutcome, CircuitState

_NOW = datetime(2020, 1, 1, tzinfo=UTC)


def _outcome(
    *,
    attempted: bool = True,
    failed: bool = False,
    fallback: bool = False,
    error: str | None = None,
) -> CallOutcome:
    return CallOutcome(
        breaker_name="svc",
        state=CircuitState.OPEN if fallback else CircuitState.CLOSED,
        request_attempted=attempted,
        failed=failed,
        fallback_invoked=fallback,
        occurred_at=_NOW,
        error=error,
    )


def test_empty_analytics_report_has_zero_rates() -> None:
    report = Analytics().report()

    assert report.total_calls == 0
    assert report.success_rate == 0.0
    assert report.failure_rate == 0.0
    assert report.failures == []


def test_rates_are_computed_over_sent_requests() -> None:
    analytics = Analytics()
    for _ in range(3):
        analytics.record(_outcome())
    analytics.record(_outcome(failed=True, error="timeout"))
    analytics.record(_outcome(attempted=False, fallback=True))

    report = analytics.report()

    assert report.total_calls == 5
    assert report.request_sent == 4
    assert report.fallback_calls == 1
    assert report.total_failures == 1
    assert report.failure_rate == pytest.approx(25.0)
    assert report.success_rate == pytest.approx(75.0)
    assert report.failures[0].message == "timeout"
    assert report.failures[0].occurred_at == _NOW


def test_failure_history_is_bounded() -> None:
    analytics = Analytics(max_failures=2)
    for index in range(3):
        analytics.record(_outcome(failed=True, error=f"err-{index}"))

    report = analytics.report()

    assert report.total_failures == 3
    assert [failure.message for failure in report.failures] == ["err-1", "err-2"]
    assert [failure.total_failures for failure in report.failures] == [2, 3]


def test_report_serializes_to_json() -> None:
    analytics = Analytics()
    analytics.record(_outcome(failed=True, error="boom"))

    payload = json.loads(analytics.report().model_dump_json())

    assert payload["request_sent"] == 1
    assert payload["failure_rate"] == 100.0
    assert payload["failures"][0]["message"] == "boom"


def test_negative_failure_history_size_is_rejected() -> None:
    with pytest.raises(ValueError, match="max_failures"):
        Analytics(max_failures=-1)
