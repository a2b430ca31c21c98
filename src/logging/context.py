# src/logging/context.py v3
"""Contextual logging support: attach request_id, operation and model to log records."""

from __future__ import annotations

import contextvars
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

# Set per public client call; asyncio tasks inherit a copy.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)
_model: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "model", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    operation: str | None = None
    model: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        operation=_operation.get(),
        model=_model.get(),
    )


def set_request_context(operation: str, model: str | None = None) -> str:
    """Start a request scope and return its generated request id."""
    request_id = uuid.uuid4().hex[:12]
    _request_id.set(request_id)
    _operation.set(operation)
    _model.set(model)
    return request_id


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _operation.set(None)
    _model.set(None)


@contextmanager
def request_scope(operation: str, model: str | None = None) -> Iterator[str]:
    """Set request context for the duration of one call, then restore it."""
    tokens = (
        _request_id.set(uuid.uuid4().hex[:12]),
        _operation.set(operation),
        _model.set(model),
    )
    try:
        yield _request_id.get()  # type: ignore[misc]
    finally:
        _model.reset(tokens[2])
        _operation.reset(tokens[1])
        _request_id.reset(tokens[0])
