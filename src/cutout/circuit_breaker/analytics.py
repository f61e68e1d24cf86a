"""Call analytics for circuit breakers.

Analytics are a pure observer: sinks receive one ``CallOutcome`` per protected
call and have no influence on breaker state.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from pydantic import BaseModel, Field

from cutout.circuit_breaker.state import CircuitState


@dataclass(frozen=True)
class CallOutcome:
    """Outcome of one protected call as seen by the orchestrator.

    Attributes:
        breaker_name: Breaker that handled the call.
        state: State the call was routed by.
        request_attempted: Whether the real request was attempted.
        failed: Whether the attempted request failed.
        fallback_invoked: Whether the fallback chain ran.
        occurred_at: Completion timestamp.
        elapsed: Seconds spent in the attempt or fallback chain.
        error: Error message for failed attempts or exhausted fallbacks.
    """

    breaker_name: str
    state: CircuitState
    request_attempted: bool
    failed: bool
    fallback_invoked: bool
    occurred_at: datetime
    elapsed: float = 0.0
    error: str | None = None


class AnalyticsSink(Protocol):
    """Sink protocol for call outcomes."""

    def record(self, outcome: CallOutcome) -> None:
        """Handle one call outcome."""


class FailureRecord(BaseModel):
    """One recorded request failure."""

    message: str
    occurred_at: datetime
    total_failures: int


class AnalyticsReport(BaseModel):
    """Aggregated analytics for one breaker, rates in percent."""

    request_sent: int = 0
    total_failures: int = 0
    fallback_calls: int = 0
    total_calls: int = 0
    success_rate: float = 0.0
    failure_rate: float = 0.0
    failures: list[FailureRecord] = Field(default_factory=list)


class Analytics:
    """In-memory analytics aggregator implementing ``AnalyticsSink``."""

    def __init__(self, *, max_failures: int = 100) -> None:
        """Create an empty aggregator.

        Args:
            max_failures: Number of most recent failures retained in reports.
        """
        if max_failures < 0:
            raise ValueError("max_failures must be >= 0")
        self.request_sent = 0
        self.total_failures = 0
        self.fallback_calls = 0
        self.total_calls = 0
        self._failures: deque[FailureRecord] = deque(maxlen=max_failures)

    def record(self, outcome: CallOutcome) -> None:
        """Count one call outcome."""
        self.total_calls += 1
        if outcome.request_attempted:
            self.request_sent += 1
        if outcome.fallback_invoked:
            self.fallback_calls += 1
        if outcome.request_attempted and outcome.failed:
            self.total_failures += 1
            self._failures.append(
                FailureRecord(
                    message=outcome.error or "",
                    occurred_at=outcome.occurred_at,
                    total_failures=self.total_failures,
                )
            )

    @property
    def failure_rate(self) -> float:
        if self.request_sent == 0:
            return 0.0
        return 100.0 * self.total_failures / self.request_sent

    @property
    def success_rate(self) -> float:
        if self.request_sent == 0:
            return 0.0
        return 100.0 - self.failure_rate

    def report(self) -> AnalyticsReport:
        """Return a point-in-time analytics report."""
        return AnalyticsReport(
            request_sent=self.request_sent,
            total_failures=self.total_failures,
            fallback_calls=self.fallback_calls,
            total_calls=self.total_calls,
            success_rate=self.success_rate,
            failure_rate=self.failure_rate,
            failures=list(self._failures),
        )
