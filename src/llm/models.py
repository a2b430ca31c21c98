# src/llm/models.py v2
"""Message and response types: Message, MessageContent, ChatResponse.

Content is a tagged union: plain text, or an ordered list of text/image
parts. Part order is preserved exactly as the caller gave it, since
interleaving matters to the provider.
"""

from __future__ import annotations

import base64
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Role = Literal["system", "user", "assistant"]


class TextPart(BaseModel):
    """Text segment of a multimodal message."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    """Image reference (http(s) URL or data URL) of a multimodal message."""

    model_config = ConfigDict(frozen=True)

    type: Literal["image_url"] = "image_url"
    url: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("image reference must not be empty")
        return v

    @classmethod
    def from_bytes(cls, data: bytes, media_type: str = "image/jpeg") -> ImagePart:
        """Inline raw image bytes as a base64 data URL."""
        b64 = base64.b64encode(data).decode("ascii")
        return cls(url=f"data:{media_type};base64,{b64}")


ContentPart = Annotated[Union[TextPart, ImagePart], Field(discriminator="type")]


class TextContent(BaseModel):
    """Plain string content."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str


class MultimodalContent(BaseModel):
    """Ordered sequence of text and image parts."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["multimodal"] = "multimodal"
    parts: tuple[ContentPart, ...]


MessageContent = Annotated[
    Union[TextContent, MultimodalContent], Field(discriminator="kind")
]


class Message(BaseModel):
    """Single chat message. Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: MessageContent

    @field_validator("content", mode="before")
    @classmethod
    def coerce_plain_string(cls, v: Any) -> Any:
        # Message(role="user", content="hi") is the common case.
        if isinstance(v, str):
            return TextContent(text=v)
        return v

    @classmethod
    def text(cls, role: Role, text: str) -> Message:
        return cls(role=role, content=TextContent(text=text))

    @classmethod
    def multimodal(cls, role: Role, parts: list[TextPart | ImagePart]) -> Message:
        return cls(role=role, content=MultimodalContent(parts=tuple(parts)))

    @property
    def text_value(self) -> str | None:
        """The string content, or None for multimodal content."""
        if isinstance(self.content, TextContent):
            return self.content.text
        return None


class Usage(BaseModel):
    """Token counters reported by the provider."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class Choice(BaseModel):
    """One completion candidate."""

    model_config = ConfigDict(frozen=True)

    message: Message
    finish_reason: str | None = None


class ChatResponse(BaseModel):
    """Decoded chat completion response."""

    model_config = ConfigDict(frozen=True)

    id: str
    choices: tuple[Choice, ...]
    usage: Usage | None = None

    @property
    def first_text(self) -> str | None:
        """Text of the first choice, None when there is none."""
        if not self.choices:
            return None
        return self.choices[0].message.text_value


class AccessToken(BaseModel):
    """Bearer token held by the token manager. Not part of the public API."""

    model_config = ConfigDict(frozen=True)

    value: str
    expires_at: float

    def is_fresh(self, now: float, buffer_s: float) -> bool:
        """True while now is before expiry minus the safety buffer."""
        return now < self.expires_at - buffer_s
