"""Normalized outbound response values."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import httpx


@dataclass(frozen=True)
class OutboundResponse:
    """Normalized result of one outbound call or fallback producer.

    Attributes:
        status_code: HTTP status code.
        body: Decoded response body.
        headers: Response headers.
        url: URL that produced the response, empty for fallback responses.
        elapsed: Seconds spent on the exchange.
        raw: Underlying ``httpx`` response when one exists.
    """

    status_code: int = 0
    body: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    url: str = ""
    elapsed: float = 0.0
    raw: httpx.Response | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @classmethod
    def from_httpx(cls, response: httpx.Response, *, elapsed: float) -> OutboundResponse:
        """Build a normalized response from a fully read ``httpx`` response."""
        return cls(
            status_code=response.status_code,
            body=response.text,
            headers=dict(response.headers),
            url=str(response.request.url),
            elapsed=elapsed,
            raw=response,
        )
