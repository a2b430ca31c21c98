# tests/unit/logging/test_unit_handlers.py v2
"""Tests for logging/handlers.py: size parsing, rotation, redaction."""

from __future__ import annotations

import logging

import pytest

from secureproxy.logging.handlers import SecretRedactingFilter, create_rotating_handler, parse_size


def _record(msg, *args) -> logging.LogRecord:
    return logging.LogRecord(
        name="test", level=logging.INFO, pathname="", lineno=0,
        msg=msg, args=args, exc_info=None,
    )


class TestParseSize:
    def test_mb(self):
        assert parse_size("10MB") == 10 * 1024 * 1024

    def test_kb_case_insensitive(self):
        assert parse_size("512kb") == 512 * 1024

    def test_bare_bytes(self):
        assert parse_size("2048") == 2048

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid size"):
            parse_size("10bytes")


class TestCreateRotatingHandler:
    def test_creates_handler(self, tmp_path):
        handler = create_rotating_handler(str(tmp_path / "a" / "sdk.log"), rotation="1MB", retention=5)
        assert handler.maxBytes == 1024 * 1024
        assert handler.backupCount == 5
        assert (tmp_path / "a").exists()
        handler.close()


class TestSecretRedactingFilter:
    def test_bearer_token_redacted(self):
        record = _record("headers: Authorization: Bearer abc.def-123")
        assert SecretRedactingFilter().filter(record)
        assert "abc.def-123" not in record.getMessage()
        assert "Bearer [REDACTED]" in record.getMessage()

    def test_known_secret_redacted_from_args(self):
        record = _record("key=%s", "sk_live_secret")
        SecretRedactingFilter(["sk_live_secret"]).filter(record)
        assert record.getMessage() == "key=[REDACTED]"

    def test_clean_record_untouched(self):
        record = _record("hello %s", "world")
        SecretRedactingFilter(["sk"]).filter(record)
        assert record.args == ("world",)
