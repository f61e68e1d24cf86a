"""Outbound request values."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from cutout.circuit_breaker.exceptions import RequestConstructionError

BackoffFunction = Callable[[float], float]


@dataclass(frozen=True)
class OutboundRequest:
    """Data needed to perform one protected HTTP call.

    Attributes:
        url: Absolute target URL.
        method: HTTP method, normalized to upper case.
        timeout: Hard deadline in seconds for the whole exchange.
        body: Optional request body, sent as-is.
        headers: Optional headers applied to the request.
        allowed_status: Optional allow-list of success status codes.
        backoff: Optional caller-side retry hint mapping the previous delay in
            seconds to the next one. The breaker never invokes it.
    """

    url: str
    method: str = "GET"
    timeout: float = 10.0
    body: bytes | str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    allowed_status: tuple[int, ...] | None = None
    backoff: BackoffFunction | None = None

    def __post_init__(self) -> None:
        """Validate and normalize request inputs."""
        url = self.url.strip() if isinstance(self.url, str) else ""
        if not url:
            raise RequestConstructionError("url must be non-empty")
        method = self.method.strip().upper() if isinstance(self.method, str) else ""
        if not method:
            raise RequestConstructionError("method must be non-empty")
        if self.timeout <= 0:
            raise RequestConstructionError("timeout must be > 0")

        allowed_status = self.allowed_status
        if allowed_status is not None:
            allowed_status = tuple(int(status) for status in allowed_status)

        object.__setattr__(self, "url", url)
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        object.__setattr__(self, "allowed_status", allowed_status)
