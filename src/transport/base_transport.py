# src/transport/base_transport.py v1
"""Abstract HTTP transport used by the token manager and the client.

The pipeline only needs POST with a byte body and headers, returning the
status code and raw body. Anything that can do that (httpx, a test fake)
can back the SDK.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field


class TransportResponse(BaseModel):
    """Status and raw body of an HTTP response."""

    status_code: int
    body: bytes = b""
    headers: dict[str, str] = Field(default_factory=dict)

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class TransportError(Exception):
    """The request never produced an HTTP response (DNS, connect, timeout...)."""


class BaseTransport(ABC):
    """Minimal async HTTP transport."""

    @abstractmethod
    async def post(
        self,
        url: str,
        body: bytes,
        headers: dict[str, str],
    ) -> TransportResponse:
        """Send a POST request.

        Raises:
            TransportError: If no HTTP response was received.
        """

    async def aclose(self) -> None:
        """Release pooled connections. No-op by default."""
