# tests/conftest.py v2
"""Shared test fixtures: a recording fake transport, a controllable clock,
and a client wired to both. No network I/O.
"""

from __future__ import annotations

import json
from collections import deque
from typing import Any

import pytest

from secureproxy.client.proxy_client import SecureProxyClient
from secureproxy.transport.base_transport import BaseTransport, TransportResponse

BASE_URL = "https://proxy.test"


def json_response(status: int, payload: Any, headers: dict[str, str] | None = None) -> TransportResponse:
    """TransportResponse with a JSON-encoded body."""
    return TransportResponse(
        status_code=status,
        body=json.dumps(payload).encode("utf-8"),
        headers=headers or {},
    )


def auth_ok(token: str = "tok-1", expires_in: float = 3600) -> TransportResponse:
    return json_response(200, {"token": token, "expiresIn": expires_in})


def completion_ok(content: str = "hi", response_id: str = "x", **extra: Any) -> TransportResponse:
    payload: dict[str, Any] = {
        "id": response_id,
        "choices": [{"message": {"role": "assistant", "content": content}}],
    }
    payload.update(extra)
    return json_response(200, payload)


class FakeTransport(BaseTransport):
    """Replays queued responses per endpoint and records every request.

    Queued items may be TransportResponse instances or exceptions to raise.
    When an auth queue is empty, a default token response is served.
    """

    def __init__(self) -> None:
        self.auth_queue: deque[Any] = deque()
        self.completion_queue: deque[Any] = deque()
        self.requests: list[dict[str, Any]] = []
        self.closed = False

    async def post(self, url: str, body: bytes, headers: dict[str, str]) -> TransportResponse:
        self.requests.append({"url": url, "body": body, "headers": dict(headers)})
        if url.endswith("/api/auth/token"):
            item = self.auth_queue.popleft() if self.auth_queue else auth_ok()
        elif url.endswith("/api/v1/chat/completions"):
            if not self.completion_queue:
                raise AssertionError("unexpected completion request")
            item = self.completion_queue.popleft()
        else:
            raise AssertionError(f"unexpected url {url}")
        if isinstance(item, BaseException):
            raise item
        return item

    async def aclose(self) -> None:
        self.closed = True

    def calls_to(self, suffix: str) -> list[dict[str, Any]]:
        return [r for r in self.requests if r["url"].endswith(suffix)]

    @property
    def auth_calls(self) -> int:
        return len(self.calls_to("/api/auth/token"))

    @property
    def completion_calls(self) -> list[dict[str, Any]]:
        return self.calls_to("/api/v1/chat/completions")


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client(transport: FakeTransport, clock: FakeClock) -> SecureProxyClient:
    """Legacy single-key client over the fake transport."""
    return SecureProxyClient(
        proxy_key="pk_test_123456", base_url=BASE_URL, transport=transport, clock=clock,
    )


@pytest.fixture
def signed_client(transport: FakeTransport, clock: FakeClock) -> SecureProxyClient:
    """Split-key client (requests carry HMAC signature headers)."""
    return SecureProxyClient(
        proxy_key="pk_test_123456",
        secret_key="sk_test_secret",
        base_url=BASE_URL,
        transport=transport,
        clock=clock,
    )
