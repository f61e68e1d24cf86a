"""Circuit breaker exceptions.

Callers can distinguish between:
  - A request that could not be built (``RequestConstructionError``).
  - An attempted call that failed (``RequestFailedError`` and subclasses).
  - A call that was never attempted because the circuit is open and no
    fallback produced a response (``FallbackExhaustedError``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cutout.errors import TransientError

if TYPE_CHECKING:
    from cutout.circuit_breaker.response import OutboundResponse


class CircuitBreakerError(Exception):
    """Base exception for the circuit breaker package."""


class RequestConstructionError(CircuitBreakerError, ValueError):
    """Raised when outbound request inputs are malformed."""


class RequestFailedError(CircuitBreakerError):
    """Base exception for an attempted call that did not succeed."""


class TransportError(RequestFailedError, TransientError):
    """Raised when the underlying call could not complete."""


class RequestTimeoutError(TransportError):
    """Raised when the request deadline elapses before a response arrives.

    Attributes:
        timeout: Deadline in seconds that was exceeded.
    """

    def __init__(self, url: str, timeout: float) -> None:
        self.url = url
        self.timeout = timeout
        super().__init__(f"request_timeout: {url} exceeded {timeout:g}s")


class RejectedStatusError(RequestFailedError):
    """Raised when a call completes with a status outside the allowed set.

    The exception message is the response body so callers can inspect why the
    dependency rejected the call.

    Attributes:
        status_code: HTTP status returned by the dependency.
        body: Decoded response body.
        response: Normalized response that was rejected.
    """

    def __init__(self, response: OutboundResponse) -> None:
        """Initialize a rejected-outcome exception payload.

        Args:
            response: Normalized response classified as a failure.
        """
        self.response = response
        self.status_code = response.status_code
        self.body = response.body
        super().__init__(response.body)


class FallbackExhaustedError(CircuitBreakerError):
    """Raised when no fallback producer returned a response."""


class CircuitOpenError(FallbackExhaustedError):
    """Raised when the circuit is open and no fallbacks were supplied.

    Attributes:
        breaker_name: Name of the breaker rejecting the call.
        retry_after: Seconds until a half-open probe may be attempted.
    """

    def __init__(self, breaker_name: str, retry_after: float) -> None:
        """Initialize a circuit-open exception payload.

        Args:
            breaker_name: Breaker rejecting the call.
            retry_after: Seconds until the next probe window opens.
        """
        self.breaker_name = breaker_name
        self.retry_after = retry_after
        super().__init__(f"circuit_open: {breaker_name} retry_after={retry_after:g}s")
