# src/session/comparison.py v2
"""Send one prompt to several models concurrently and collect the answers."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Sequence

from pydantic import BaseModel, ConfigDict

from secureproxy.llm.base_client import BaseChatClient
from secureproxy.llm.errors import SecureProxyError

logger = logging.getLogger(__name__)


class ModelResult(BaseModel):
    """Outcome for one model: exactly one of text / error is set."""

    model_config = ConfigDict(frozen=True)

    model: str
    text: str | None = None
    error: str | None = None
    error_kind: str | None = None
    latency_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


async def compare_models(
    client: BaseChatClient,
    prompt: str,
    models: Sequence[str],
) -> list[ModelResult]:
    """Run `complete(prompt)` against every model at once.

    A failing model is reported in its result and never cancels the others.
    Duplicate model ids are queried once.

    Returns:
        One ModelResult per distinct model, sorted by model id.
    """
    unique = sorted(set(models))
    if not unique:
        return []

    results = await asyncio.gather(*(_run_one(client, prompt, m) for m in unique))
    failed = sum(1 for r in results if not r.ok)
    logger.info("Compared %d models (%d failed)", len(results), failed)
    return list(results)


async def _run_one(client: BaseChatClient, prompt: str, model: str) -> ModelResult:
    t0 = time.monotonic()
    try:
        text = await client.complete(prompt, model=model)
    except SecureProxyError as e:
        return _failed(model, e.message, e.kind, t0)
    except Exception as e:
        logger.warning("Model %s raised %s", model, type(e).__name__, exc_info=True)
        return _failed(model, str(e) or type(e).__name__, type(e).__name__, t0)
    return ModelResult(model=model, text=text, latency_ms=_elapsed_ms(t0))


def _failed(model: str, error: str, kind: str, t0: float) -> ModelResult:
    return ModelResult(model=model, error=error, error_kind=kind, latency_ms=_elapsed_ms(t0))


def _elapsed_ms(t0: float) -> int:
    return int((time.monotonic() - t0) * 1000)
