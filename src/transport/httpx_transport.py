# src/transport/httpx_transport.py v1
"""httpx-backed transport.

Timeouts use httpx defaults unless a value is given. Cancelling the awaiting
task cancels the in-flight request.
"""

from __future__ import annotations

import logging

import httpx

from secureproxy.transport.base_transport import (
    BaseTransport,
    TransportError,
    TransportResponse,
)

logger = logging.getLogger(__name__)


class HttpxTransport(BaseTransport):
    """Transport over a shared httpx.AsyncClient."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout_s: float | None = None,
    ) -> None:
        self._owns_client = client is None
        if client is None:
            if timeout_s is not None:
                client = httpx.AsyncClient(timeout=timeout_s)
            else:
                client = httpx.AsyncClient()
        self._client = client

    async def post(
        self,
        url: str,
        body: bytes,
        headers: dict[str, str],
    ) -> TransportResponse:
        try:
            resp = await self._client.post(url, content=body, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("POST %s failed: %s", url, type(e).__name__)
            raise TransportError(f"{type(e).__name__}: {e}") from e

        logger.debug("POST %s -> %d (%d bytes)", url, resp.status_code, len(resp.content))
        return TransportResponse(
            status_code=resp.status_code,
            body=resp.content,
            headers=dict(resp.headers),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
