# src/tracking/models.py v2
"""Tracking models: per-call records and per-model usage totals."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class CallRecord(BaseModel):
    """One chat completion attempt against the proxy."""

    call_id: str
    timestamp: datetime
    operation: str
    model: str
    status: Literal["success", "failed"]
    error_kind: str | None = None
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    latency_ms: int


class ModelUsage(BaseModel):
    """Aggregated usage for one model id."""

    model: str
    total_calls: int = 0
    failed_calls: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    avg_latency_ms: float = 0.0
