# src/llm/base_client.py v2
"""Abstract chat client interface.

The conversation layer and the comparison helper depend on this interface,
not on the concrete proxy client, so a configured client is always injected.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from secureproxy.llm.models import ChatResponse, Message

DEFAULT_MODEL = "gpt-4o"


class BaseChatClient(ABC):
    """Chat, completion and vision operations."""

    @abstractmethod
    async def chat_completion(
        self,
        model: str,
        messages: Sequence[Message],
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> ChatResponse:
        """Full chat completion over an ordered message history."""

    @abstractmethod
    async def complete(self, prompt: str, model: str = DEFAULT_MODEL) -> str:
        """Single user prompt in, first choice text out."""

    @abstractmethod
    async def vision(self, prompt: str, image_ref: str, model: str = DEFAULT_MODEL) -> str:
        """Prompt plus one image reference in, first choice text out."""
