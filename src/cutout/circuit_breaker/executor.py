"""Deadline-bounded execution of a single outbound HTTP call."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Collection

import httpx

from cutout.circuit_breaker.classifier import is_success_status
from cutout.circuit_breaker.exceptions import (
    RejectedStatusError,
    RequestConstructionError,
    RequestTimeoutError,
    TransportError,
)
from cutout.circuit_breaker.request import OutboundRequest
from cutout.circuit_breaker.response import OutboundResponse


class RequestExecutor:
    """Send one request under a hard deadline and classify its outcome.

    The executor never touches breaker state: it either returns a successful
    ``OutboundResponse`` or raises a ``RequestFailedError`` subclass and leaves
    the bookkeeping to the caller.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        """Create an executor.

        Args:
            client: Shared async HTTP client. When omitted, a short-lived
                client is opened for every call.
        """
        self._client = client

    async def execute(self, request: OutboundRequest) -> OutboundResponse:
        """Build and send ``request``, applying its allow-list and timeout."""
        if self._client is not None:
            return await self._execute_with(self._client, request)
        async with httpx.AsyncClient() as client:
            return await self._execute_with(client, request)

    async def send(
        self,
        request: httpx.Request,
        *,
        timeout: float,
        allowed_status: Collection[int] | None = None,
    ) -> OutboundResponse:
        """Send a caller-built ``httpx.Request`` under ``timeout`` seconds."""
        if timeout <= 0:
            raise RequestConstructionError("timeout must be > 0")
        if self._client is not None:
            return await self._send_with(
                self._client,
                request,
                timeout=timeout,
                allowed_status=allowed_status,
            )
        async with httpx.AsyncClient() as client:
            return await self._send_with(
                client,
                request,
                timeout=timeout,
                allowed_status=allowed_status,
            )

    async def _execute_with(
        self,
        client: httpx.AsyncClient,
        request: OutboundRequest,
    ) -> OutboundResponse:
        try:
            built = client.build_request(
                request.method,
                request.url,
                content=request.body,
                headers=dict(request.headers),
                timeout=request.timeout,
            )
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            raise RequestConstructionError(str(exc)) from exc
        return await self._send_with(
            client,
            built,
            timeout=request.timeout,
            allowed_status=request.allowed_status,
        )

    async def _send_with(
        self,
        client: httpx.AsyncClient,
        request: httpx.Request,
        *,
        timeout: float,
        allowed_status: Collection[int] | None,
    ) -> OutboundResponse:
        url = str(request.url)
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(client.send(request), timeout=timeout)
        except TimeoutError as exc:
            raise RequestTimeoutError(url, timeout) from exc
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(url, timeout) from exc
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            raise RequestConstructionError(str(exc)) from exc
        except httpx.RequestError as exc:
            raise TransportError(str(exc) or exc.__class__.__name__) from exc

        elapsed = max(time.monotonic() - start, 0.0)
        outbound = OutboundResponse.from_httpx(response, elapsed=elapsed)
        if not is_success_status(response.status_code, allowed_status):
            raise RejectedStatusError(outbound)
        return outbound
