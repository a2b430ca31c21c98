# tests/unit/llm/test_unit_errors.py v1
"""Tests for llm/errors.py: error taxonomy and the single token retry helper."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from secureproxy.llm.errors import (
    AuthenticationFailed,
    EmptyResponse,
    InvalidResponse,
    NetworkError,
    RateLimitExceeded,
    SecureProxyError,
    TokenExpired,
    retry_on_token_expired,
)


class TestTaxonomy:
    def test_all_derive_from_base(self):
        for err in (
            AuthenticationFailed(401), TokenExpired(), RateLimitExceeded(),
            InvalidResponse(), EmptyResponse(), NetworkError(500),
        ):
            assert isinstance(err, SecureProxyError)

    def test_kinds_are_distinct(self):
        kinds = {
            AuthenticationFailed.kind, TokenExpired.kind, RateLimitExceeded.kind,
            InvalidResponse.kind, EmptyResponse.kind, NetworkError.kind,
        }
        assert len(kinds) == 6

    def test_empty_response_is_invalid_response(self):
        assert isinstance(EmptyResponse(), InvalidResponse)

    def test_network_error_status(self):
        e = NetworkError(503)
        assert e.status_code == 503
        assert "503" in str(e)

    def test_network_error_transport(self):
        e = NetworkError(reason="ConnectError")
        assert e.status_code is None
        assert "ConnectError" in str(e)

    def test_rate_limit_retry_after(self):
        assert RateLimitExceeded(2.5).retry_after == 2.5


class TestRetryOnTokenExpired:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        fn = AsyncMock(return_value="ok")
        assert await retry_on_token_expired(fn, 1, a=2) == "ok"
        fn.assert_awaited_once_with(1, a=2)

    @pytest.mark.asyncio
    async def test_retries_once_after_token_expired(self):
        fn = AsyncMock(side_effect=[TokenExpired(), "ok"])
        assert await retry_on_token_expired(fn) == "ok"
        assert fn.await_count == 2

    @pytest.mark.asyncio
    async def test_second_failure_propagates(self):
        fn = AsyncMock(side_effect=[TokenExpired(), TokenExpired()])
        with pytest.raises(TokenExpired):
            await retry_on_token_expired(fn)
        assert fn.await_count == 2

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self):
        fn = AsyncMock(side_effect=RateLimitExceeded())
        with pytest.raises(RateLimitExceeded):
            await retry_on_token_expired(fn)
        assert fn.await_count == 1
