# src/llm/errors.py v1
"""Typed failures raised by the request pipeline.

Every error surfaced by the SDK derives from SecureProxyError so callers can
catch broadly, while still branching on the concrete kind (re-login on
AuthenticationFailed, "try again" on RateLimitExceeded, and so on).
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SecureProxyError(Exception):
    """Base class for all SDK failures."""

    kind: str = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidProxyKey(SecureProxyError):
    """The proxy key given at construction time is empty or malformed."""

    kind = "invalid_proxy_key"

    def __init__(self, message: str = "Invalid proxy key provided") -> None:
        super().__init__(message)


class AuthenticationFailed(SecureProxyError):
    """The auth endpoint rejected the credentials or failed."""

    kind = "authentication_failed"

    def __init__(self, status_code: int | None = None) -> None:
        self.status_code = status_code
        msg = "Authentication failed"
        if status_code is not None:
            msg += f" (HTTP {status_code})"
        super().__init__(msg)


class TokenExpired(SecureProxyError):
    """A downstream call returned 401; the cached token has been dropped."""

    kind = "token_expired"

    def __init__(self) -> None:
        super().__init__("Access token has expired")


class RateLimitExceeded(SecureProxyError):
    """The proxy answered 429."""

    kind = "rate_limit_exceeded"

    def __init__(self, retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        msg = "Rate limit exceeded"
        if retry_after is not None:
            msg += f" (retry after {retry_after:g}s)"
        super().__init__(msg)


class InvalidResponse(SecureProxyError):
    """Malformed JSON or a missing required field in a response body."""

    kind = "invalid_response"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        msg = "Invalid response from server"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class EmptyResponse(InvalidResponse):
    """A well-formed response that carries no choices."""

    kind = "empty_response"

    def __init__(self) -> None:
        super().__init__("response contains no choices")


class NetworkError(SecureProxyError):
    """Unexpected HTTP status, or a transport-level failure (status_code None)."""

    kind = "network_error"

    def __init__(self, status_code: int | None = None, reason: str | None = None) -> None:
        self.status_code = status_code
        self.reason = reason
        if status_code is not None:
            msg = f"Network error: HTTP {status_code}"
        else:
            msg = f"Network error: {reason or 'transport failure'}"
        super().__init__(msg)


async def retry_on_token_expired(
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    **kwargs: Any,
) -> T:
    """Await fn once more if the first attempt failed with TokenExpired.

    The client has already invalidated its token on the 401, so the second
    attempt re-authenticates. Any error from the second attempt propagates.
    """
    try:
        return await fn(*args, **kwargs)
    except TokenExpired:
        logger.info("Token expired mid-call, re-authenticating and retrying once")
        return await fn(*args, **kwargs)
