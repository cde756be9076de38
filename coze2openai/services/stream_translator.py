"""
Stream Translator

Converts the backend chat lifecycle into OpenAI chat.completion.chunk frames over SSE.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, AsyncGenerator, Awaitable, Callable, Optional

import anyio

from coze2openai.common.errors import BackendError
from coze2openai.common.sse import SSE_DONE, format_sse
from coze2openai.domain.chat import (
    ChatCompleted,
    ChatError,
    ChatEvent,
    ChatFailed,
    ChatInProgress,
    MessageDelta,
)
from coze2openai.domain.openai import (
    FINISH_REASON_STOP,
    OBJECT_CHAT_COMPLETION_CHUNK,
    completion_id,
)
from coze2openai.providers.base import STREAM_INTERRUPTED, ChatSession

logger = logging.getLogger(__name__)


class StreamState(str, Enum):
    STARTED = "started"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


class StreamTranslator:
    """
    Chat event to OpenAI chunk state machine

    STARTED -> STREAMING -> COMPLETED, or FAILED when the backend reports an error
    or the stream breaks. Both terminal states end with the [DONE] sentinel.
    """

    def __init__(self, model: str, clock: Callable[[], float] = time.time):
        self.model = model
        self.state = StreamState.STARTED
        self._clock = clock
        self._created = 0
        self._chat_id = ""

    @property
    def done(self) -> bool:
        return self.state in (StreamState.COMPLETED, StreamState.FAILED)

    def _timestamp(self) -> int:
        self._created = max(self._created, int(self._clock()))
        return self._created

    def _chunk(self, chat_id: str, delta: dict[str, Any], finish_reason: Optional[str] = None) -> dict[str, Any]:
        self._chat_id = chat_id or self._chat_id
        return {
            "id": completion_id(self._chat_id),
            "object": OBJECT_CHAT_COMPLETION_CHUNK,
            "created": self._timestamp(),
            "model": self.model,
            "choices": [
                {
                    "index": 0,
                    "delta": delta,
                    "finish_reason": finish_reason,
                }
            ],
        }

    def translate(self, event: ChatEvent) -> list[Any]:
        """
        Translate one backend event

        Returns:
            list: Payloads to send in order (chunk dicts, or the [DONE] sentinel)
        """
        if self.done:
            return []

        if isinstance(event, ChatInProgress):
            self.state = StreamState.STREAMING
            return [self._chunk(event.chat_id, {"role": "assistant", "content": ""})]

        if isinstance(event, MessageDelta):
            self.state = StreamState.STREAMING
            return [self._chunk(event.chat_id, {"content": event.content})]

        if isinstance(event, ChatCompleted):
            self.state = StreamState.COMPLETED
            return [self._chunk(event.chat_id, {}, FINISH_REASON_STOP), SSE_DONE]

        if isinstance(event, ChatFailed):
            self._chat_id = event.chat_id or self._chat_id
            return self.fail(event.error)

        return []

    def fail(self, error: ChatError) -> list[Any]:
        """
        End the stream with an error frame followed by [DONE]

        Once chunks were sent the response status is committed, so the error is
        delivered in-band.
        """
        if self.done:
            return []
        self.state = StreamState.FAILED
        return [{"error": {"code": error.code, "message": error.message}}, SSE_DONE]

    def finish(self) -> list[Any]:
        """Close a stream whose events ran out before completion."""
        return self.fail(STREAM_INTERRUPTED)


async def relay_stream(
    session: ChatSession,
    translator: StreamTranslator,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    cancel_on_disconnect: bool = True,
) -> AsyncGenerator[str, None]:
    """
    Relay backend events to the client as SSE frames

    Stops silently when the client disconnects, either detected before a frame is
    written or through cancellation by the server. Whenever the loop exits before
    the chat reached a terminal state the backend chat is cancelled; the session
    is always closed.

    Args:
        session: Backend chat session
        translator: Per-request translator
        is_disconnected: Returns True once the client has gone away
        cancel_on_disconnect: Cancel the backend chat on early exit

    Yields:
        str: SSE frames
    """
    try:
        async for event in session.events():
            if is_disconnected is not None and await is_disconnected():
                logger.info("Client disconnected, stop relaying chat stream")
                break
            for payload in translator.translate(event):
                yield format_sse(payload)
            if translator.done:
                break
        else:
            for payload in translator.finish():
                yield format_sse(payload)
    except BackendError as e:
        logger.error("Chat stream broken: [%s] %s", e.code, e.message)
        for payload in translator.fail(ChatError(code=e.code, message=e.message)):
            yield format_sse(payload)
    except asyncio.CancelledError:
        logger.info("Client disconnected, chat stream cancelled")
        raise
    finally:
        with anyio.CancelScope(shield=True):
            if not translator.done and cancel_on_disconnect:
                await session.cancel()
            else:
                await session.aclose()
