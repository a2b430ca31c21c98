# src/client/proxy_client.py v2
"""SecureProxyClient: authenticated chat/completion/vision calls.

Each public call suspends at most twice: the conditional auth request and
the completion request. There is no internal retry. A 401 drops the cached
token and raises TokenExpired so the caller may retry once
(see retry_on_token_expired).
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

from secureproxy.auth.signing import sign_request
from secureproxy.auth.token_manager import DEFAULT_REFRESH_BUFFER_S, TokenManager
from secureproxy.config.settings import DEFAULT_BASE_URL, ProxySettings
from secureproxy.llm.base_client import DEFAULT_MODEL, BaseChatClient
from secureproxy.llm.codec import decode_response, encode_request_bytes
from secureproxy.llm.errors import (
    EmptyResponse,
    InvalidProxyKey,
    InvalidResponse,
    NetworkError,
    RateLimitExceeded,
    TokenExpired,
)
from secureproxy.llm.models import ChatResponse, ImagePart, Message, TextPart
from secureproxy.logging.context import request_scope
from secureproxy.tracking.call_logger import CallLogger
from secureproxy.transport.base_transport import BaseTransport, TransportError, TransportResponse
from secureproxy.transport.httpx_transport import HttpxTransport

logger = logging.getLogger(__name__)

COMPLETIONS_PATH = "/api/v1/chat/completions"


class SecureProxyClient(BaseChatClient):
    """Client for the SecureProxy LLM forwarding service."""

    def __init__(
        self,
        proxy_key: str,
        secret_key: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        transport: BaseTransport | None = None,
        token_manager: TokenManager | None = None,
        call_logger: CallLogger | None = None,
        clock: Callable[[], float] = time.time,
        refresh_buffer_s: float = DEFAULT_REFRESH_BUFFER_S,
        single_flight: bool = True,
        timeout_s: float | None = None,
    ) -> None:
        if not proxy_key or not proxy_key.strip():
            raise InvalidProxyKey()

        self._proxy_key = proxy_key
        self._secret_key = secret_key or None
        self._base_url = base_url.rstrip("/")
        self._clock = clock
        self._owns_transport = transport is None
        self._transport = transport or HttpxTransport(timeout_s=timeout_s)
        self._tokens = token_manager or TokenManager(
            base_url=self._base_url,
            proxy_key=proxy_key,
            transport=self._transport,
            secret_key=self._secret_key,
            refresh_buffer_s=refresh_buffer_s,
            clock=clock,
            single_flight=single_flight,
        )
        self.call_logger = call_logger or CallLogger()

    @classmethod
    def from_settings(
        cls,
        settings: ProxySettings,
        transport: BaseTransport | None = None,
    ) -> SecureProxyClient:
        """Build a client from loaded ProxySettings."""
        return cls(
            proxy_key=settings.proxy_key,
            secret_key=settings.secret_key,
            base_url=settings.base_url,
            transport=transport,
            refresh_buffer_s=settings.token_refresh_buffer_s,
            single_flight=settings.single_flight_refresh,
            timeout_s=settings.timeout_s,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def token_manager(self) -> TokenManager:
        return self._tokens

    async def __aenter__(self) -> SecureProxyClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport:
            await self._transport.aclose()

    # --- Public operations ---

    async def chat_completion(
        self,
        model: str,
        messages: Sequence[Message],
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> ChatResponse:
        """Send a chat completion request.

        Raises:
            AuthenticationFailed: Token could not be obtained.
            TokenExpired: Proxy answered 401; the cached token was dropped.
            RateLimitExceeded: Proxy answered 429.
            InvalidResponse: Body could not be decoded.
            NetworkError: Any other status, or no response at all.
        """
        with request_scope("chat_completion", model):
            return await self._chat_completion(
                "chat_completion", model, lambda: messages, max_tokens, temperature
            )

    async def complete(self, prompt: str, model: str = DEFAULT_MODEL) -> str:
        with request_scope("complete", model):
            response = await self._chat_completion(
                "complete", model, lambda: [Message.text("user", prompt)], None, None
            )
            return _first_text(response)

    async def vision(self, prompt: str, image_ref: str, model: str = DEFAULT_MODEL) -> str:
        """Ask about one image (http(s) or data URL).

        An empty image_ref fails pydantic validation before any request is
        sent; the failure is still recorded by the call logger.
        """
        def build() -> list[Message]:
            return [
                Message.multimodal("user", [TextPart(text=prompt), ImagePart(url=image_ref)])
            ]

        with request_scope("vision", model):
            response = await self._chat_completion("vision", model, build, None, None)
            return _first_text(response)

    # --- Internals ---

    async def _chat_completion(
        self,
        operation: str,
        model: str,
        build_messages: Callable[[], Sequence[Message]],
        max_tokens: int | None,
        temperature: float | None,
    ) -> ChatResponse:
        t0 = time.monotonic()
        try:
            messages = build_messages()
            token = await self._tokens.ensure_valid_token()
            url = self._base_url + COMPLETIONS_PATH
            body = encode_request_bytes(
                model, messages, max_tokens=max_tokens, temperature=temperature
            )
            resp = await self._post(url, body, token)
            response = self._handle_status(resp, token)
        except Exception as e:
            self.call_logger.record_failure(operation, model, e, _elapsed_ms(t0))
            raise

        self.call_logger.record_success(operation, model, response, _elapsed_ms(t0))
        logger.debug(
            "%s on %s returned %d choice(s)", operation, model, len(response.choices)
        )
        return response

    async def _post(self, url: str, body: bytes, token: str) -> TransportResponse:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }
        if self._secret_key:
            headers.update(
                sign_request(
                    url=url,
                    method="POST",
                    body=body,
                    proxy_key=self._proxy_key,
                    secret_key=self._secret_key,
                    clock=self._clock,
                )
            )
        try:
            return await self._transport.post(url, body, headers)
        except TransportError as e:
            raise NetworkError(reason=str(e)) from e

    def _handle_status(self, resp: TransportResponse, token: str) -> ChatResponse:
        status = resp.status_code
        if status == 200:
            return decode_response(resp.body)
        if status == 401:
            self._tokens.invalidate(token)
            raise TokenExpired()
        if status == 429:
            raise RateLimitExceeded(_parse_retry_after(resp.header("Retry-After")))
        logger.warning("Completion request failed: HTTP %d", status)
        raise NetworkError(status_code=status)


def _first_text(response: ChatResponse) -> str:
    if not response.choices:
        raise EmptyResponse()
    text = response.choices[0].message.text_value
    if text is None:
        raise InvalidResponse("first choice is not plain text")
    return text


def _parse_retry_after(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _elapsed_ms(t0: float) -> int:
    return int((time.monotonic() - t0) * 1000)
