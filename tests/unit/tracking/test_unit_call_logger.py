# tests/unit/tracking/test_unit_call_logger.py v2
"""Tests for tracking/call_logger.py."""

from __future__ import annotations

import json

from secureproxy.llm.errors import NetworkError
from secureproxy.llm.models import ChatResponse, Choice, Message, Usage
from secureproxy.tracking.call_logger import CallLogger


def _response(total: int | None = 15) -> ChatResponse:
    usage = None
    if total is not None:
        usage = Usage(prompt_tokens=10, completion_tokens=total - 10, total_tokens=total)
    return ChatResponse(
        id="r", choices=(Choice(message=Message.text("assistant", "x")),), usage=usage
    )


class TestCallLogger:
    def test_record_success(self):
        logger = CallLogger()
        record = logger.record_success("complete", "gpt-4o", _response(), latency_ms=120)
        assert record.status == "success"
        assert record.total_tokens == 15
        assert record.error_kind is None

    def test_missing_usage_counts_zero(self):
        record = CallLogger().record_success("complete", "gpt-4o", _response(None), latency_ms=1)
        assert record.total_tokens == 0

    def test_record_failure(self):
        record = CallLogger().record_failure("vision", "gpt-4o", NetworkError(502), latency_ms=30)
        assert record.status == "failed"
        assert record.error_kind == "network_error"

    def test_record_failure_foreign_exception(self):
        record = CallLogger().record_failure("vision", "gpt-4o", KeyError("x"), latency_ms=1)
        assert record.error_kind == "KeyError"

    def test_totals(self):
        logger = CallLogger()
        logger.record_success("complete", "gpt-4o", _response(15), latency_ms=100)
        logger.record_success("chat_completion", "gpt-4o", _response(25), latency_ms=100)
        assert logger.total_calls == 2
        assert logger.total_tokens == 40

    def test_usage_by_model(self):
        logger = CallLogger()
        logger.record_success("complete", "gpt-4o", _response(15), latency_ms=100)
        logger.record_failure("complete", "gpt-4o", NetworkError(500), latency_ms=300)
        logger.record_success("complete", "gemini-1.5-pro", _response(20), latency_ms=50)
        usage = logger.usage_by_model()
        assert list(usage) == ["gemini-1.5-pro", "gpt-4o"]
        assert usage["gpt-4o"].total_calls == 2
        assert usage["gpt-4o"].failed_calls == 1
        assert usage["gpt-4o"].avg_latency_ms == 200.0

    def test_save(self, tmp_path):
        logger = CallLogger()
        logger.record_success("complete", "gpt-4o", _response(), latency_ms=100)
        out = tmp_path / "calls.jsonl"
        logger.save(out)
        lines = out.read_text().strip().split("\n")
        assert len(lines) == 1
        assert json.loads(lines[0])["model"] == "gpt-4o"

    def test_clear(self):
        logger = CallLogger()
        logger.record_success("complete", "gpt-4o", _response(), latency_ms=1)
        logger.clear()
        assert logger.records == []
