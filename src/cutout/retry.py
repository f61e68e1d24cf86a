"""Caller-side retry helpers for protected calls.

The circuit breaker never retries on its own. Callers that want to retry
transient failures wrap their protected call with ``build_request_retrying``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    stop_never,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from cutout.circuit_breaker.request import BackoffFunction, OutboundRequest
from cutout.errors import TransientError


@dataclass(frozen=True)
class RetryBackoffPolicy:
    """Attempt count and delay bounds for retrying one request.

    ``attempts=None`` retries until the call stops failing transiently.
    """

    attempts: int | None
    min_seconds: float
    max_seconds: float

    def __post_init__(self) -> None:
        if self.attempts is not None and self.attempts < 1:
            raise ValueError("attempts must be >= 1 when provided")
        if self.min_seconds < 0:
            raise ValueError("min_seconds must be >= 0")
        if self.max_seconds < 0:
            raise ValueError("max_seconds must be >= 0")
        if self.max_seconds < self.min_seconds:
            raise ValueError("max_seconds must be >= min_seconds")


class wait_backoff(wait_base):
    """Tenacity wait strategy driven by an ``OutboundRequest.backoff`` function.

    The first retry waits ``initial`` seconds. Each later retry waits
    ``backoff(previous_delay)`` seconds, clamped to ``[0, maximum]``.
    """

    def __init__(
        self,
        backoff: BackoffFunction,
        *,
        initial: float,
        maximum: float,
    ) -> None:
        self._backoff = backoff
        self._initial = initial
        self._maximum = maximum

    def _clamp(self, delay: float) -> float:
        return min(max(delay, 0.0), self._maximum)

    def __call__(self, retry_state: RetryCallState) -> float:
        delay = self._clamp(self._initial)
        for _ in range(max(retry_state.attempt_number - 1, 0)):
            delay = self._clamp(self._backoff(delay))
        return delay


def _request_wait(request: OutboundRequest, policy: RetryBackoffPolicy) -> wait_base:
    if request.backoff is None:
        return wait_exponential_jitter(
            initial=policy.min_seconds,
            max=policy.max_seconds,
        )
    return wait_backoff(
        request.backoff,
        initial=policy.min_seconds,
        maximum=policy.max_seconds,
    )


def build_request_retrying(
    *,
    request: OutboundRequest,
    policy: RetryBackoffPolicy,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    before_sleep: Callable[[RetryCallState], None] | None = None,
    reraise: bool = True,
) -> AsyncRetrying:
    """Build an ``AsyncRetrying`` for one request's transient failures.

    Only ``TransientError`` failures (transport errors and timeouts) are
    retried. Rejected statuses and open-circuit rejections are not. The
    request's ``backoff`` function drives the delays when present, otherwise
    exponential jitter within the policy bounds is used.
    """
    stop = (
        stop_never if policy.attempts is None else stop_after_attempt(policy.attempts)
    )
    options: dict[str, Any] = {
        "retry": retry_if_exception_type(TransientError),
        "wait": _request_wait(request, policy),
        "stop": stop,
        "reraise": reraise,
    }
    if sleep is not None:
        options["sleep"] = sleep
    if before_sleep is not None:
        options["before_sleep"] = before_sleep
    return AsyncRetrying(**options)
