"""Fire-and-forget breaker event notification.

Events are pushed into a bounded ``asyncio.Queue`` supplied by the caller.
Publishing never blocks: when the queue is full the event is dropped and a
warning is logged. Consumers must not assume every event is delivered.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum

import structlog

from cutout.logging import log_warning

_logger = structlog.stdlib.get_logger(__name__)


class BreakerEvent(StrEnum):
    """Event tags emitted by a circuit breaker."""

    STATE_CHANGED = "state_changed"
    FAILURE_RECORDED = "failure_recorded"


class EventPublisher:
    """Best-effort publisher bound to one breaker's event queue."""

    def __init__(
        self,
        breaker_name: str,
        queue: asyncio.Queue[BreakerEvent] | None = None,
    ) -> None:
        """Create a publisher.

        Args:
            breaker_name: Breaker name used in log fields.
            queue: Bounded queue receiving events. ``None`` disables emission.

        Raises:
            ValueError: When ``queue`` is unbounded.
        """
        if queue is not None and queue.maxsize <= 0:
            raise ValueError("event queue must be bounded (maxsize > 0)")
        self._breaker_name = breaker_name
        self._queue = queue
        self.dropped = 0

    @property
    def enabled(self) -> bool:
        return self._queue is not None

    def publish(self, event: BreakerEvent) -> bool:
        """Enqueue ``event`` without waiting and return whether it was queued."""
        if self._queue is None:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            log_warning(
                _logger,
                "circuit_breaker.event_dropped",
                breaker=self._breaker_name,
                breaker_event=str(event),
                dropped=self.dropped,
            )
            return False
        return True
