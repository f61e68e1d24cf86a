"""Core circuit breaker implementation."""

import asyncio
import sys
import threading
import time
from collections.abc import Awaitable, Callable, Collection
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx
import structlog

from cutout.circuit_breaker.analytics import AnalyticsSink, CallOutcome
from cutout.circuit_breaker.events import BreakerEvent, EventPublisher
from cutout.circuit_breaker.exceptions import (
    CircuitOpenError,
    RequestConstructionError,
)
from cutout.circuit_breaker.executor import RequestExecutor
from cutout.circuit_breaker.fallback import FallbackProducer, execute_fallbacks
from cutout.circuit_breaker.ledger import FailureLedger
from cutout.circuit_breaker.request import OutboundRequest
from cutout.circuit_breaker.response import OutboundResponse
from cutout.circuit_breaker.state import (
    BreakerSnapshot,
    CircuitState,
    compute_state,
)
from cutout.logging import log_exception, log_info, log_warning

Attempt = Callable[[], Awaitable[OutboundResponse]]

_logger = structlog.stdlib.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class _ProbeGate:
    """Allow at most one in-flight half-open probe per breaker instance."""

    def __init__(self) -> None:
        is_gil_enabled = getattr(sys, "_is_gil_enabled", None)
        self._gil_enabled = True if is_gil_enabled is None else bool(is_gil_enabled())
        self._thread_lock: threading.Lock | None = None
        if not self._gil_enabled:
            self._thread_lock = threading.Lock()
        self._held = False

    def try_acquire(self) -> bool:
        if self._thread_lock is None:
            if self._held:
                return False
            self._held = True
            return True

        with self._thread_lock:
            if self._held:
                return False
            self._held = True
            return True

    def release(self) -> None:
        if self._thread_lock is None:
            self._held = False
            return
        with self._thread_lock:
            self._held = False


@dataclass(slots=True)
class CircuitBreakerConfig:
    """Circuit breaker configuration values.

    Attributes:
        fail_threshold: Failure count at or above which the breaker stops
            attempting real requests.
        health_check_period: Seconds after the last failure before a
            half-open probe is allowed.
        request_timeout: Default deadline in seconds for caller-built requests.
        limit_half_open_probes: Allow only one in-flight probe while
            ``HALF_OPEN``; concurrent callers are routed to the fallback chain.
        expected_exceptions: Attempt exceptions that count as failures.
        excluded_exceptions: Attempt exceptions that must not count as
            failures. They propagate without any bookkeeping.
    """

    fail_threshold: int = 5
    health_check_period: float = 30.0
    request_timeout: float = 10.0
    limit_half_open_probes: bool = True
    expected_exceptions: tuple[type[Exception], ...] = (Exception,)
    excluded_exceptions: tuple[type[Exception], ...] = (RequestConstructionError,)

    def __post_init__(self) -> None:
        if self.fail_threshold < 1:
            raise ValueError("fail_threshold must be >= 1")
        if self.health_check_period <= 0:
            raise ValueError("health_check_period must be > 0")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")


class CircuitBreaker:
    """Stateful proxy around calls to one unreliable dependency.

    Every call derives the circuit state from the failure history:

    - ``CLOSED`` and ``HALF_OPEN`` attempt the real request. A success clears
      the failure history, a failure is recorded and re-raised. The fallback
      chain is not consulted on a primary failure.
    - ``OPEN`` skips the request and runs the fallback chain instead.
    """

    def __init__(
        self,
        name: str,
        *,
        config: CircuitBreakerConfig | None = None,
        client: httpx.AsyncClient | None = None,
        executor: RequestExecutor | None = None,
        events: asyncio.Queue[BreakerEvent] | None = None,
        analytics: AnalyticsSink | None = None,
    ) -> None:
        """Build a circuit breaker with optional custom dependencies.

        Args:
            name: Breaker name used in logs, events and analytics.
            config: Breaker behavior configuration. Defaults to
                ``CircuitBreakerConfig()``.
            client: Shared async HTTP client for the default executor.
            executor: Request executor. Defaults to one built on ``client``.
            events: Optional bounded queue receiving ``BreakerEvent`` tags.
            analytics: Optional sink receiving one outcome per call.
        """
        self.name = name
        self.config = CircuitBreakerConfig() if config is None else config
        self._executor = RequestExecutor(client) if executor is None else executor
        self._events = EventPublisher(name, events)
        self._analytics = analytics
        self._ledger = FailureLedger()
        self._probe_gate = _ProbeGate()
        self._last_state = CircuitState.CLOSED

    @property
    def failure_count(self) -> int:
        return self._ledger.failure_count

    @property
    def last_failure_at(self) -> datetime | None:
        return self._ledger.last_failure_at

    @property
    def analytics(self) -> AnalyticsSink | None:
        return self._analytics

    def state(self) -> CircuitState:
        """Return the state a call arriving now would be routed by."""
        return self._compute_state(_utcnow())

    async def snapshot(self) -> BreakerSnapshot:
        """Return a consistent point-in-time view of the breaker."""
        async with self._ledger.locked():
            now = _utcnow()
            return BreakerSnapshot(
                name=self.name,
                state=self._compute_state(now),
                failure_count=self._ledger.failure_count,
                last_failure_at=self._ledger.last_failure_at,
                fail_threshold=self.config.fail_threshold,
                health_check_period=self.config.health_check_period,
            )

    async def reset(self) -> None:
        """Clear the failure history, closing the circuit."""
        async with self._ledger.locked():
            self._ledger.record_success()
            self._observe_state(_utcnow())

    async def call(
        self,
        request: OutboundRequest,
        *fallbacks: FallbackProducer,
    ) -> OutboundResponse:
        """Perform ``request`` under circuit breaker protection.

        Args:
            request: Request built and sent by the breaker's executor.
            *fallbacks: Producers tried in order while the circuit is open.

        Returns:
            The real response, or the first successful fallback response.

        Raises:
            RequestFailedError: When the attempted request fails.
            CircuitOpenError: When the circuit is open and no fallbacks exist.
            Exception: The last fallback's exception when every fallback fails.
        """

        async def _attempt() -> OutboundResponse:
            return await self._executor.execute(request)

        return await self._protect(
            _attempt,
            fallbacks,
            label=f"{request.method} {request.url}",
        )

    async def call_with_custom_request(
        self,
        request: httpx.Request,
        allowed_status: Collection[int] | None,
        *fallbacks: FallbackProducer,
        timeout: float | None = None,
    ) -> OutboundResponse:
        """Send a caller-built ``httpx.Request`` under breaker protection.

        Args:
            request: Prepared request to send.
            allowed_status: Allow-list of success statuses, or ``None`` to
                accept any status below 400.
            *fallbacks: Producers tried in order while the circuit is open.
            timeout: Deadline in seconds. Defaults to
                ``config.request_timeout``.

        Raises:
            RequestConstructionError: When ``timeout`` is not positive. This
                is raised before the circuit is consulted.
        """
        deadline = self.config.request_timeout if timeout is None else timeout
        if deadline <= 0:
            raise RequestConstructionError("timeout must be > 0")

        async def _attempt() -> OutboundResponse:
            return await self._executor.send(
                request,
                timeout=deadline,
                allowed_status=allowed_status,
            )

        return await self._protect(
            _attempt,
            fallbacks,
            label=f"{request.method} {request.url}",
        )

    async def execute(
        self,
        attempt: Attempt,
        *fallbacks: FallbackProducer,
    ) -> OutboundResponse:
        """Run a custom single-attempt callable under breaker protection.

        Args:
            attempt: Zero-argument async callable performing one attempt.
            *fallbacks: Producers tried in order while the circuit is open.
        """
        callable_name = getattr(attempt, "__qualname__", None)
        if callable_name is None:
            callable_name = getattr(attempt, "__name__", None)
        if callable_name is None:
            callable_name = attempt.__class__.__qualname__
        return await self._protect(attempt, fallbacks, label=str(callable_name))

    async def _protect(
        self,
        attempt: Attempt,
        fallbacks: tuple[FallbackProducer, ...],
        *,
        label: str,
    ) -> OutboundResponse:
        task = asyncio.current_task()
        if task is not None:
            task.set_name(f"circuit_breaker:{self.name}:{label}")

        probe_acquired = False
        async with self._ledger.locked():
            now = _utcnow()
            state = self._observe_state(now)
            route = state
            if state == CircuitState.HALF_OPEN and self.config.limit_half_open_probes:
                probe_acquired = self._probe_gate.try_acquire()
                if not probe_acquired:
                    route = CircuitState.OPEN
            retry_after = self._retry_after(now) if route == CircuitState.OPEN else 0.0

        if route == CircuitState.OPEN:
            return await self._run_fallbacks(fallbacks, retry_after=retry_after)

        try:
            return await self._attempt(attempt, route)
        finally:
            if probe_acquired:
                self._probe_gate.release()

    async def _attempt(self, attempt: Attempt, state: CircuitState) -> OutboundResponse:
        start = time.monotonic()
        try:
            response = await attempt()
        except self.config.excluded_exceptions:
            raise
        except self.config.expected_exceptions as exc:
            elapsed = max(time.monotonic() - start, 0.0)
            async with self._ledger.locked():
                now = _utcnow()
                failure_count = self._ledger.record_failure(now)
                self._events.publish(BreakerEvent.FAILURE_RECORDED)
                self._observe_state(now)
            log_warning(
                _logger,
                "circuit_breaker.failure_recorded",
                breaker=self.name,
                state=str(state),
                failure_count=failure_count,
                error_type=exc.__class__.__name__,
                error=str(exc),
            )
            self._record_outcome(
                CallOutcome(
                    breaker_name=self.name,
                    state=state,
                    request_attempted=True,
                    failed=True,
                    fallback_invoked=False,
                    occurred_at=now,
                    elapsed=elapsed,
                    error=str(exc),
                )
            )
            raise

        elapsed = max(time.monotonic() - start, 0.0)
        async with self._ledger.locked():
            now = _utcnow()
            self._ledger.record_success()
            self._observe_state(now)
        self._record_outcome(
            CallOutcome(
                breaker_name=self.name,
                state=state,
                request_attempted=True,
                failed=False,
                fallback_invoked=False,
                occurred_at=now,
                elapsed=elapsed,
            )
        )
        return response

    async def _run_fallbacks(
        self,
        fallbacks: tuple[FallbackProducer, ...],
        *,
        retry_after: float,
    ) -> OutboundResponse:
        start = time.monotonic()
        error: str | None = None
        try:
            if not fallbacks:
                raise CircuitOpenError(self.name, retry_after=retry_after)
            return await execute_fallbacks(fallbacks)
        except Exception as exc:
            error = str(exc)
            raise
        finally:
            self._record_outcome(
                CallOutcome(
                    breaker_name=self.name,
                    state=CircuitState.OPEN,
                    request_attempted=False,
                    failed=False,
                    fallback_invoked=bool(fallbacks),
                    occurred_at=_utcnow(),
                    elapsed=max(time.monotonic() - start, 0.0),
                    error=error,
                )
            )

    def _compute_state(self, now: datetime) -> CircuitState:
        return compute_state(
            failure_count=self._ledger.failure_count,
            fail_threshold=self.config.fail_threshold,
            last_failure_at=self._ledger.last_failure_at,
            health_check_period=self.config.health_check_period,
            now=now,
        )

    def _observe_state(self, now: datetime) -> CircuitState:
        """Derive the current state and announce it if it changed.

        Callers must hold the ledger lock. The remembered state only decides
        whether to emit ``STATE_CHANGED``; routing always uses the fresh value.
        """
        state = self._compute_state(now)
        previous = self._last_state
        if state == previous:
            return state
        self._last_state = state
        self._events.publish(BreakerEvent.STATE_CHANGED)
        log_info(
            _logger,
            "circuit_breaker.state_changed",
            breaker=self.name,
            old=str(previous),
            new=str(state),
            failure_count=self._ledger.failure_count,
        )
        return state

    def _retry_after(self, now: datetime) -> float:
        last_failure_at = self._ledger.last_failure_at
        if last_failure_at is None:
            return 0.0
        elapsed = (now - last_failure_at).total_seconds()
        return max(self.config.health_check_period - elapsed, 0.0)

    def _record_outcome(self, outcome: CallOutcome) -> None:
        if self._analytics is None:
            return
        try:
            self._analytics.record(outcome)
        except Exception:
            log_exception(
                _logger,
                "circuit_breaker.analytics_sink_failed",
                breaker=self.name,
            )
