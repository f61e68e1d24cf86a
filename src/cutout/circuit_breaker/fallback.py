"""Ordered fallback chain used while the circuit is open."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Sequence
from typing import cast

import structlog

from cutout.circuit_breaker.exceptions import FallbackExhaustedError
from cutout.circuit_breaker.response import OutboundResponse
from cutout.logging import log_debug

FallbackProducer = Callable[[], OutboundResponse | Awaitable[OutboundResponse]]

_logger = structlog.stdlib.get_logger(__name__)


async def _resolve_fallback(producer: FallbackProducer) -> OutboundResponse:
    result = producer()
    if inspect.isawaitable(result):
        result = await cast(Awaitable[OutboundResponse], result)
    if result is None:
        raise TypeError("fallback producer returned no response")
    return result


async def execute_fallbacks(
    fallbacks: Sequence[FallbackProducer],
) -> OutboundResponse:
    """Run fallback producers in order until one returns a response.

    Each level is usually cheaper than the one before it (secondary service,
    local cache, static default). Producers after the first success are never
    invoked. A producer that returns ``None`` counts as failed.

    Raises:
        FallbackExhaustedError: When ``fallbacks`` is empty.
        Exception: The last producer's exception when every producer fails.
    """
    last_error: Exception | None = None
    for position, producer in enumerate(fallbacks):
        try:
            return await _resolve_fallback(producer)
        except Exception as exc:
            log_debug(
                _logger,
                "circuit_breaker.fallback_failed",
                position=position,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            last_error = exc

    if last_error is not None:
        raise last_error
    raise FallbackExhaustedError("no fallback succeeded")
