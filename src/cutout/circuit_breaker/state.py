"""Circuit breaker state primitives."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class CircuitState(StrEnum):
    """Circuit breaker state values."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class BreakerSnapshot:
    """Point-in-time view of breaker internals useful for metrics/logging.

    Attributes:
        name: Breaker name.
        state: State derived at the time the snapshot was taken.
        failure_count: Failures recorded since the last success.
        last_failure_at: Timestamp of the last recorded failure, if any.
        fail_threshold: Failure count at which the breaker opens.
        health_check_period: Seconds after the last failure before a probe.
    """

    name: str
    state: CircuitState
    failure_count: int
    last_failure_at: datetime | None
    fail_threshold: int
    health_check_period: float


def compute_state(
    *,
    failure_count: int,
    fail_threshold: int,
    last_failure_at: datetime | None,
    health_check_period: float,
    now: datetime,
) -> CircuitState:
    """Derive the breaker state from its failure history.

    ``HALF_OPEN`` is not stored anywhere: it is the threshold-exceeded state
    once the health-check period has elapsed since the last failure.
    """
    if failure_count < fail_threshold or last_failure_at is None:
        return CircuitState.CLOSED
    if (now - last_failure_at).total_seconds() <= health_check_period:
        return CircuitState.OPEN
    return CircuitState.HALF_OPEN
