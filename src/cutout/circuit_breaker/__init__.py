"""Async circuit breaker for outbound HTTP calls with ordered fallbacks.

This package implements the circuit breaker pattern from *Release It!*.

Key behavior notes:
  - The circuit state is never stored. It is derived on every call from the
    failure count, the fail threshold, the last failure timestamp and the
    health-check period.
  - A failed request in ``CLOSED`` or ``HALF_OPEN`` is re-raised to the caller;
    fallbacks run only while the circuit is ``OPEN``.
  - Half-open probing is conservative by default: at most one in-flight probe
    call is permitted per ``CircuitBreaker`` instance and concurrent callers
    are routed to the fallback chain until it resolves.
  - Event and analytics delivery never blocks or fails a call.
"""

from cutout.circuit_breaker.analytics import (
    Analytics,
    AnalyticsReport,
    AnalyticsSink,
    CallOutcome,
    FailureRecord,
)
from cutout.circuit_breaker.breaker import CircuitBreaker, CircuitBreakerConfig
from cutout.circuit_breaker.classifier import is_success_status
from cutout.circuit_breaker.events import BreakerEvent, EventPublisher
from cutout.circuit_breaker.exceptions import (
    CircuitBreakerError,
    CircuitOpenError,
    FallbackExhaustedError,
    RejectedStatusError,
    RequestConstructionError,
    RequestFailedError,
    RequestTimeoutError,
    TransportError,
)
from cutout.circuit_breaker.executor import RequestExecutor
from cutout.circuit_breaker.fallback import FallbackProducer, execute_fallbacks
from cutout.circuit_breaker.request import BackoffFunction, OutboundRequest
from cutout.circuit_breaker.response import OutboundResponse
from cutout.circuit_breaker.state import BreakerSnapshot, CircuitState, compute_state

__all__ = [
    "Analytics",
    "AnalyticsReport",
    "AnalyticsSink",
    "BackoffFunction",
    "BreakerEvent",
    "BreakerSnapshot",
    "CallOutcome",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitOpenError",
    "CircuitState",
    "EventPublisher",
    "FailureRecord",
    "FallbackExhaustedError",
    "FallbackProducer",
    "OutboundRequest",
    "OutboundResponse",
    "RejectedStatusError",
    "RequestConstructionError",
    "RequestExecutor",
    "RequestFailedError",
    "RequestTimeoutError",
    "TransportError",
    "compute_state",
    "execute_fallbacks",
    "is_success_status",
]
