# src/llm/codec.py v1
"""Chat completion wire codec: request encoding and response decoding.

Request body:
    {"model", "messages": [{"role", "content"}], "max_tokens"?, "temperature"?}

Optional generation parameters are omitted when absent (never null), which
tells the proxy to use the provider default.

Response body:
    {"id", "choices": [{"message": {"role", "content"}, "finish_reason"?}],
     "usage"?: {"prompt_tokens", "completion_tokens", "total_tokens"}}
"""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

from secureproxy.llm.errors import InvalidResponse
from secureproxy.llm.models import (
    ChatResponse,
    Choice,
    ImagePart,
    Message,
    MessageContent,
    MultimodalContent,
    TextContent,
    TextPart,
    Usage,
)

logger = logging.getLogger(__name__)

_VALID_ROLES = {"system", "user", "assistant"}


def encode_content(content: MessageContent) -> str | list[dict[str, Any]]:
    """Encode message content to its wire form."""
    if isinstance(content, TextContent):
        return content.text
    if isinstance(content, MultimodalContent):
        parts: list[dict[str, Any]] = []
        for part in content.parts:
            if isinstance(part, TextPart):
                parts.append({"type": "text", "text": part.text})
            elif isinstance(part, ImagePart):
                parts.append({"type": "image_url", "image_url": {"url": part.url}})
            else:
                raise TypeError(f"Unsupported content part: {type(part).__name__}")
        return parts
    raise TypeError(f"Unsupported message content: {type(content).__name__}")


def encode_request(
    model: str,
    messages: Sequence[Message],
    max_tokens: int | None = None,
    temperature: float | None = None,
) -> dict[str, Any]:
    """Build the chat completion payload.

    Args:
        model: Model id; the proxy maps it to a provider.
        messages: Conversation, in order.
        max_tokens: Generation cap, omitted when None.
        temperature: Sampling temperature, omitted when None.

    Returns:
        JSON-serializable request body.
    """
    body: dict[str, Any] = {
        "model": model,
        "messages": [
            {"role": m.role, "content": encode_content(m.content)} for m in messages
        ],
    }
    if max_tokens is not None:
        body["max_tokens"] = max_tokens
    if temperature is not None:
        body["temperature"] = temperature
    return body


def encode_request_bytes(
    model: str,
    messages: Sequence[Message],
    max_tokens: int | None = None,
    temperature: float | None = None,
) -> bytes:
    """Exact bytes sent on the wire (and signed in split-key mode)."""
    body = encode_request(model, messages, max_tokens=max_tokens, temperature=temperature)
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def load_json_object(raw: bytes | str | dict[str, Any]) -> dict[str, Any]:
    """Parse a response body into a dict or raise InvalidResponse."""
    if isinstance(raw, dict):
        return raw
    try:
        data = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as e:
        raise InvalidResponse("body is not valid JSON") from e
    if not isinstance(data, dict):
        raise InvalidResponse("body is not a JSON object")
    return data


def decode_response(raw: bytes | str | dict[str, Any]) -> ChatResponse:
    """Decode a chat completion response.

    Raises:
        InvalidResponse: If the body is not JSON, or `id`/`choices` or a
            choice's `message.role`/`message.content` is missing or mistyped.
    """
    data = load_json_object(raw)

    response_id = data.get("id")
    if not isinstance(response_id, str):
        raise InvalidResponse("missing 'id'")
    raw_choices = data.get("choices")
    if not isinstance(raw_choices, list):
        raise InvalidResponse("missing 'choices'")

    choices = [_decode_choice(c, i) for i, c in enumerate(raw_choices)]
    return ChatResponse(id=response_id, choices=tuple(choices), usage=_decode_usage(data.get("usage")))


def _decode_choice(raw: Any, index: int) -> Choice:
    if not isinstance(raw, dict):
        raise InvalidResponse(f"choice {index} is not an object")
    message = raw.get("message")
    if not isinstance(message, dict):
        raise InvalidResponse(f"choice {index} has no 'message'")
    role = message.get("role")
    content = message.get("content")
    if role not in _VALID_ROLES:
        raise InvalidResponse(f"choice {index} has invalid role {role!r}")
    # Providers answer with plain text only.
    if not isinstance(content, str):
        raise InvalidResponse(f"choice {index} content is not a string")

    finish_reason = raw.get("finish_reason")
    if not isinstance(finish_reason, str):
        finish_reason = None
    return Choice(
        message=Message(role=role, content=TextContent(text=content)),
        finish_reason=finish_reason,
    )


def _decode_usage(raw: Any) -> Usage | None:
    """Lenient: any malformed counter drops the whole usage block."""
    if not isinstance(raw, dict):
        return None
    counters: dict[str, int] = {}
    for key in ("prompt_tokens", "completion_tokens", "total_tokens"):
        value = raw.get(key)
        if not isinstance(value, int) or isinstance(value, bool):
            logger.debug("Ignoring usage block: %s=%r", key, value)
            return None
        counters[key] = value
    return Usage(**counters)
