# src/tracking/call_logger.py v2
"""Completion call logging: keeps an in-memory record of every call a client makes."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from secureproxy.llm.errors import SecureProxyError
from secureproxy.llm.models import ChatResponse
from secureproxy.tracking.models import CallRecord, ModelUsage

logger = logging.getLogger(__name__)


class CallLogger:
    """Accumulates CallRecords for the lifetime of a client."""

    def __init__(self) -> None:
        self._records: list[CallRecord] = []

    def record_success(
        self,
        operation: str,
        model: str,
        response: ChatResponse,
        latency_ms: int,
    ) -> CallRecord:
        """Record a decoded response. Missing usage counts as zero tokens."""
        usage = response.usage
        record = CallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            operation=operation,
            model=model,
            status="success",
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            total_tokens=usage.total_tokens if usage else 0,
            latency_ms=latency_ms,
        )
        self._records.append(record)
        return record

    def record_failure(
        self,
        operation: str,
        model: str,
        error: BaseException,
        latency_ms: int,
    ) -> CallRecord:
        """Record a failed call with the kind of error it raised."""
        kind = error.kind if isinstance(error, SecureProxyError) else type(error).__name__
        record = CallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            operation=operation,
            model=model,
            status="failed",
            error_kind=kind,
            latency_ms=latency_ms,
        )
        self._records.append(record)
        return record

    @property
    def records(self) -> list[CallRecord]:
        """All recorded calls."""
        return list(self._records)

    @property
    def total_tokens(self) -> int:
        """Total tokens consumed across all calls."""
        return sum(r.total_tokens for r in self._records)

    @property
    def total_calls(self) -> int:
        return len(self._records)

    def usage_by_model(self) -> dict[str, ModelUsage]:
        """Aggregate records per model id."""
        grouped: dict[str, list[CallRecord]] = {}
        for r in self._records:
            grouped.setdefault(r.model, []).append(r)

        result: dict[str, ModelUsage] = {}
        for model, recs in sorted(grouped.items()):
            result[model] = ModelUsage(
                model=model,
                total_calls=len(recs),
                failed_calls=sum(1 for r in recs if r.status == "failed"),
                prompt_tokens=sum(r.prompt_tokens for r in recs),
                completion_tokens=sum(r.completion_tokens for r in recs),
                total_tokens=sum(r.total_tokens for r in recs),
                avg_latency_ms=sum(r.latency_ms for r in recs) / len(recs),
            )
        return result

    def clear(self) -> None:
        self._records.clear()

    def save(self, path: Path) -> None:
        """Save all records to a JSON Lines file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w") as f:
            for record in self._records:
                f.write(json.dumps(record.model_dump(), default=str) + "\n")
        logger.debug("Wrote %d call records to %s", len(self._records), path)
