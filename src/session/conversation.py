# src/session/conversation.py v1
"""Observable conversation session over an injected chat client.

State machine per session:

    IDLE --send_message/analyze_image--> SENDING --> IDLE (result or error)

A call made while SENDING is a no-op. send_message appends the user turn
optimistically and removes it again if the request fails, so the history
never ends with an unanswered user message. Subscribers are notified with a
SessionSnapshot after every transition.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Callable

from secureproxy.llm.base_client import DEFAULT_MODEL, BaseChatClient
from secureproxy.llm.errors import (
    EmptyResponse,
    NetworkError,
    SecureProxyError,
)
from secureproxy.llm.errors import retry_on_token_expired as retry_once
from secureproxy.llm.models import Message

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    IDLE = "idle"
    SENDING = "sending"


@dataclass(frozen=True)
class SessionSnapshot:
    """What a UI binds to."""

    state: SessionState
    messages: tuple[Message, ...]
    current_response: str
    last_error: SecureProxyError | None = None

    @property
    def is_loading(self) -> bool:
        return self.state is SessionState.SENDING


Subscriber = Callable[[SessionSnapshot], None]


@dataclass
class _Subscribers:
    callbacks: list[Subscriber] = field(default_factory=list)

    def notify(self, snapshot: SessionSnapshot) -> None:
        for cb in list(self.callbacks):
            try:
                cb(snapshot)
            except Exception:
                logger.exception("Session subscriber %r raised", cb)


class ConversationSession:
    """In-memory conversation bound to one chat client."""

    def __init__(
        self,
        client: BaseChatClient,
        system_prompt: str | None = None,
        retry_on_token_expired: bool = False,
    ) -> None:
        self._client = client
        self._system_prompt = system_prompt
        self._retry_on_token_expired = retry_on_token_expired
        self._state = SessionState.IDLE
        self._messages: list[Message] = []
        self._current_response = ""
        self._last_error: SecureProxyError | None = None
        self._subscribers = _Subscribers()

    # --- Observable state ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state is SessionState.SENDING

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def current_response(self) -> str:
        return self._current_response

    @property
    def last_error(self) -> SecureProxyError | None:
        return self._last_error

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            messages=tuple(self._messages),
            current_response=self._current_response,
            last_error=self._last_error,
        )

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        self._subscribers.callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers.callbacks:
                self._subscribers.callbacks.remove(callback)

        return unsubscribe

    # --- Transitions ---

    async def send_message(self, text: str, model: str = DEFAULT_MODEL) -> str | None:
        """Send a user turn with the full history.

        Returns:
            The assistant's text, or None if the call was skipped (already
            sending) or failed (see last_error).
        """
        if self._state is SessionState.SENDING:
            logger.debug("send_message ignored: request already in flight")
            return None

        user_message = Message.text("user", text)
        self._messages.append(user_message)
        self._enter_sending()

        try:
            response = await self._call(
                self._client.chat_completion, model, self._history()
            )
            if not response.choices:
                raise EmptyResponse()
        except asyncio.CancelledError:
            self._rollback(user_message)
            self._enter_idle()
            raise
        except Exception as e:
            self._rollback(user_message)
            self._last_error = _as_sdk_error(e)
            logger.warning("send_message failed: %s", self._last_error)
            self._enter_idle()
            return None

        assistant = response.choices[0].message
        # Skip the append if the history was cleared mid-flight.
        if self._messages and self._messages[-1] is user_message:
            self._messages.append(assistant)
        self._current_response = assistant.text_value or ""
        self._enter_idle()
        return self._current_response

    async def analyze_image(
        self, prompt: str, image_ref: str, model: str = DEFAULT_MODEL
    ) -> str | None:
        """One-shot vision request; the history is left untouched."""
        if self._state is SessionState.SENDING:
            logger.debug("analyze_image ignored: request already in flight")
            return None

        self._current_response = ""
        self._enter_sending()

        try:
            text = await self._call(self._client.vision, prompt, image_ref, model)
        except asyncio.CancelledError:
            self._enter_idle()
            raise
        except Exception as e:
            self._last_error = _as_sdk_error(e)
            logger.warning("analyze_image failed: %s", self._last_error)
            self._enter_idle()
            return None

        self._current_response = text
        self._enter_idle()
        return text

    def clear_conversation(self) -> None:
        self._messages.clear()
        self._current_response = ""
        self._last_error = None
        self._subscribers.notify(self.snapshot())

    def clear_error(self) -> None:
        self._last_error = None
        self._subscribers.notify(self.snapshot())

    # --- Internals ---

    def _history(self) -> list[Message]:
        if self._system_prompt:
            return [Message.text("system", self._system_prompt), *self._messages]
        return list(self._messages)

    async def _call(self, fn, *args):  # type: ignore[no-untyped-def]
        if self._retry_on_token_expired:
            return await retry_once(fn, *args)
        return await fn(*args)

    def _rollback(self, user_message: Message) -> None:
        # Only the optimistic append is undone; it is always the last entry.
        if self._messages and self._messages[-1] is user_message:
            self._messages.pop()

    def _enter_sending(self) -> None:
        self._state = SessionState.SENDING
        self._last_error = None
        self._subscribers.notify(self.snapshot())

    def _enter_idle(self) -> None:
        self._state = SessionState.IDLE
        self._subscribers.notify(self.snapshot())


def _as_sdk_error(error: Exception) -> SecureProxyError:
    if isinstance(error, SecureProxyError):
        return error
    wrapped = NetworkError(reason=f"{type(error).__name__}: {error}")
    wrapped.__cause__ = error
    return wrapped
