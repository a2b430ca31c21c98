# src/auth/signing.py v1
"""HMAC request signing for the split-key credential scheme.

The proxy key is the public half and travels in clear. The secret key is the
private half: it only ever keys the HMAC and is never sent.

Canonical string (path without query, body is the exact wire bytes):
    "{timestamp}\\n{nonce}\\n{METHOD}\\n{path}\\n{body}"
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import time
import uuid
from typing import Callable
from urllib.parse import urlsplit

SIGNATURE_CLOCK_SKEW_S = 300

HEADER_KEY = "X-Proxy-Key"
HEADER_TIMESTAMP = "X-Proxy-Timestamp"
HEADER_NONCE = "X-Proxy-Nonce"
HEADER_SIGNATURE = "X-Proxy-Signature"


def _b64_hmac_sha256(key: bytes, message: bytes) -> str:
    mac = hmac.new(key, message, hashlib.sha256).digest()
    return base64.b64encode(mac).decode("ascii")


def build_canonical(ts: str, nonce: str, method: str, path: str, body: bytes | None) -> bytes:
    """Assemble the byte string that gets signed."""
    path_only = path.split("?", 1)[0]
    head = f"{ts}\n{nonce}\n{method.upper()}\n{path_only}\n".encode("utf-8")
    return head + (body or b"")


def sign_request(
    *,
    url: str,
    method: str,
    body: bytes | None,
    proxy_key: str,
    secret_key: str,
    clock: Callable[[], float] = time.time,
    nonce_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> dict[str, str]:
    """Return the signature headers for one request.

    Args:
        url: Full request URL; only its path is signed.
        method: HTTP method.
        body: Exact bytes that will be sent.
        proxy_key: Public half, sent as X-Proxy-Key.
        secret_key: Private half, used as the HMAC key.

    Raises:
        ValueError: If either key is empty.
    """
    if not secret_key:
        raise ValueError("Secret key is required for request signing")
    if not proxy_key:
        raise ValueError("Proxy key is required for request signing")

    ts = str(int(clock()))
    nonce = nonce_factory()
    path = urlsplit(url).path or "/"
    canonical = build_canonical(ts, nonce, method, path, body)
    sig = _b64_hmac_sha256(secret_key.encode("utf-8"), canonical)

    return {
        HEADER_KEY: proxy_key,
        HEADER_TIMESTAMP: ts,
        HEADER_NONCE: nonce,
        HEADER_SIGNATURE: sig,
    }


def verify_signature(
    *,
    ts_str: str,
    nonce: str,
    method: str,
    path: str,
    body: bytes | None,
    provided_sig_b64: str,
    secret_key: str,
    now: float | None = None,
) -> tuple[bool, str]:
    """Check a signature produced by sign_request.

    Returns:
        (is_valid, reason_if_invalid).
    """
    try:
        ts = int(ts_str)
    except (TypeError, ValueError):
        return False, "bad_timestamp"

    current = int(now if now is not None else time.time())
    if abs(current - ts) > SIGNATURE_CLOCK_SKEW_S:
        return False, "timestamp_skew"

    expected = _b64_hmac_sha256(
        secret_key.encode("utf-8"), build_canonical(ts_str, nonce, method, path, body)
    )
    if hmac.compare_digest(expected, provided_sig_b64):
        return True, ""
    return False, "bad_signature"
