"""Circuit breaker protection for calls to unreliable HTTP dependencies."""

from cutout.circuit_breaker import (
    Analytics,
    BreakerEvent,
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitOpenError,
    CircuitState,
    OutboundRequest,
    OutboundResponse,
)

__all__ = [
    "Analytics",
    "BreakerEvent",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitOpenError",
    "CircuitState",
    "OutboundRequest",
    "OutboundResponse",
]
