# src/auth/token_manager.py v2
"""Bearer token acquisition and caching.

A cached token is reused while the current time is more than the safety
buffer (300 s by default) ahead of its expiry. Otherwise a new one is
requested from POST /api/auth/token. The manager never retries on its own;
callers decide whether to retry after a TokenExpired.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Callable

from secureproxy.auth.signing import sign_request
from secureproxy.llm.codec import load_json_object
from secureproxy.llm.errors import AuthenticationFailed, InvalidResponse, NetworkError
from secureproxy.llm.models import AccessToken
from secureproxy.logging.logger import mask_secret
from secureproxy.transport.base_transport import BaseTransport, TransportError

logger = logging.getLogger(__name__)

AUTH_PATH = "/api/auth/token"
DEFAULT_REFRESH_BUFFER_S = 300.0


class TokenManager:
    """Owns the single cached access token of one client instance.

    With single_flight enabled, concurrent callers that all find the token
    stale share one auth round-trip. Without it, each may issue its own;
    the resulting tokens are interchangeable.
    """

    def __init__(
        self,
        base_url: str,
        proxy_key: str,
        transport: BaseTransport,
        secret_key: str | None = None,
        refresh_buffer_s: float = DEFAULT_REFRESH_BUFFER_S,
        clock: Callable[[], float] = time.time,
        single_flight: bool = True,
    ) -> None:
        self._auth_url = base_url.rstrip("/") + AUTH_PATH
        self._proxy_key = proxy_key
        self._secret_key = secret_key
        self._transport = transport
        self._refresh_buffer_s = refresh_buffer_s
        self._clock = clock
        self._single_flight = single_flight
        self._token: AccessToken | None = None
        self._lock = asyncio.Lock()

    @property
    def has_token(self) -> bool:
        return self._token is not None

    @property
    def expires_at(self) -> float | None:
        return self._token.expires_at if self._token else None

    def invalidate(self, rejected: str | None = None) -> None:
        """Drop the cached token; the next call re-authenticates.

        With `rejected`, the cache is only cleared while it still holds that
        value, so a late 401 for an old token keeps a newer one.
        """
        if self._token is None:
            return
        if rejected is not None and self._token.value != rejected:
            logger.debug("Ignoring 401 for a token that was already replaced")
            return
        logger.info("Invalidating cached access token")
        self._token = None

    async def ensure_valid_token(self) -> str:
        """Return a usable bearer token, refreshing it if needed.

        Raises:
            AuthenticationFailed: Auth endpoint answered non-200.
            InvalidResponse: Auth body lacks `token` or `expiresIn`.
            NetworkError: No HTTP response was received.
        """
        cached = self._cached_value()
        if cached is not None:
            return cached

        if not self._single_flight:
            return await self._refresh()

        async with self._lock:
            # Another caller may have refreshed while we waited.
            cached = self._cached_value()
            if cached is not None:
                return cached
            return await self._refresh()

    def _cached_value(self) -> str | None:
        token = self._token
        if token is not None and token.is_fresh(self._clock(), self._refresh_buffer_s):
            return token.value
        return None

    async def _refresh(self) -> str:
        body = json.dumps({"proxyKey": self._proxy_key}, separators=(",", ":")).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if self._secret_key:
            headers.update(
                sign_request(
                    url=self._auth_url,
                    method="POST",
                    body=body,
                    proxy_key=self._proxy_key,
                    secret_key=self._secret_key,
                    clock=self._clock,
                )
            )

        logger.debug("Requesting access token for key %s", mask_secret(self._proxy_key))
        try:
            resp = await self._transport.post(self._auth_url, body, headers)
        except TransportError as e:
            raise NetworkError(reason=str(e)) from e

        if resp.status_code != 200:
            logger.warning("Authentication rejected: HTTP %d", resp.status_code)
            raise AuthenticationFailed(resp.status_code)

        data = load_json_object(resp.body)
        value = data.get("token")
        expires_in = data.get("expiresIn")
        if not isinstance(value, str) or not value:
            raise InvalidResponse("auth response missing 'token'")
        if not isinstance(expires_in, (int, float)) or isinstance(expires_in, bool):
            raise InvalidResponse("auth response missing 'expiresIn'")

        now = self._clock()
        self._token = AccessToken(value=value, expires_at=now + float(expires_in))
        logger.info("Obtained access token, expires in %.0fs", float(expires_in))
        return value
