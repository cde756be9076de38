"""
Coze Protocol Client

Implements the Coze v3 chat API: starting a streamed chat, decoding its event stream,
and cancelling it.
"""

import json
import logging
from typing import Any, AsyncIterator, Optional

import anyio
import httpx

from coze2openai.common.errors import BackendError
from coze2openai.common.sse import SSE_DONE, ServerSentEvent, SSEDecoder
from coze2openai.config import get_settings
from coze2openai.domain.chat import (
    ChatCompleted,
    ChatError,
    ChatEvent,
    ChatFailed,
    ChatInProgress,
    ChatRequest,
    MessageDelta,
    Usage,
)
from coze2openai.domain.message import ImagePart, Message, Role, Text
from coze2openai.providers.base import BotClient, ChatSession

logger = logging.getLogger(__name__)

CHAT_PATH = "/v3/chat"
CHAT_CANCEL_PATH = "/v3/chat/cancel"

EVENT_CHAT_CREATED = "conversation.chat.created"
EVENT_CHAT_IN_PROGRESS = "conversation.chat.in_progress"
EVENT_MESSAGE_DELTA = "conversation.message.delta"
EVENT_CHAT_COMPLETED = "conversation.chat.completed"
EVENT_CHAT_FAILED = "conversation.chat.failed"
EVENT_ERROR = "error"
EVENT_DONE = "done"

CONTENT_TYPE_TEXT = "text"
CONTENT_TYPE_OBJECT_STRING = "object_string"


def to_coze_message(message: Message) -> dict[str, Any]:
    """
    Convert a canonical message into a Coze additional message

    Text is sent as content_type "text"; Parts as "object_string", a JSON-encoded
    list of {"type": "text"} / {"type": "image"} items.
    """
    coze_message: dict[str, Any] = {
        "role": message.role.value,
        "type": "question" if message.role == Role.USER else "answer",
    }
    if isinstance(message.content, Text):
        coze_message["content"] = message.content.text
        coze_message["content_type"] = CONTENT_TYPE_TEXT
        return coze_message

    items = []
    for part in message.content.parts:
        if isinstance(part, ImagePart):
            items.append({"type": "image", "file_url": part.url})
        else:
            items.append({"type": "text", "text": part.text})
    coze_message["content"] = json.dumps(items, ensure_ascii=False)
    coze_message["content_type"] = CONTENT_TYPE_OBJECT_STRING
    return coze_message


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_count(usage: dict[str, Any], key: str) -> int:
    value = usage.get(key) or 0
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise BackendError(
            message=f"Malformed usage {key} in Coze event: {value!r}",
            code="invalid_response",
        ) from e


def _error_from_body(status_code: int, body: bytes) -> BackendError:
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = None

    if isinstance(payload, dict) and "code" in payload:
        return BackendError(
            message=str(payload.get("msg") or ""),
            code=str(payload.get("code")),
        )
    return BackendError(
        message=body.decode("utf-8", errors="replace") or f"HTTP {status_code}",
        code=str(status_code),
    )


class CozeClient:
    """
    Coze HTTP Client

    One client per account (host + personal access token). The underlying
    httpx.AsyncClient is created lazily and shared by all chats of the account.
    """

    def __init__(
        self,
        host: str,
        token: str,
        timeout: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Coze client

        Args:
            host: API base URL, e.g. https://api.coze.com
            token: Personal access token
            timeout: Request timeout (seconds), defaults to configuration
            transport: Custom httpx transport (tests)
        """
        settings = get_settings()
        self.host = host.rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT
        self._token = token
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.host,
                timeout=httpx.Timeout(self.timeout),
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Content-Type": "application/json",
                },
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP Client"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def open_chat(self, payload: dict[str, Any]) -> httpx.Response:
        """
        Start a streamed chat

        Args:
            payload: Coze /v3/chat request body

        Returns:
            httpx.Response: Open response whose body is the SSE event stream

        Raises:
            BackendError: Coze rejected the chat or could not be reached
        """
        logger.debug(
            "Coze Request: url=%s%s body=%s",
            self.host,
            CHAT_PATH,
            json.dumps(payload, ensure_ascii=False),
        )
        client = self._get_client()
        request = client.build_request("POST", CHAT_PATH, json=payload)
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise BackendError(message=f"Request error: {str(e)}") from e

        content_type = response.headers.get("content-type", "")
        if response.status_code != 200 or "text/event-stream" not in content_type:
            try:
                body = await response.aread()
            finally:
                await response.aclose()
            raise _error_from_body(response.status_code, body)

        return response

    async def cancel_chat(self, chat_id: str, conversation_id: str) -> None:
        """
        Cancel a running chat

        Raises:
            BackendError: Coze rejected the cancel call or could not be reached
        """
        client = self._get_client()
        try:
            response = await client.post(
                CHAT_CANCEL_PATH,
                json={"chat_id": chat_id, "conversation_id": conversation_id},
            )
        except httpx.HTTPError as e:
            raise BackendError(message=f"Request error: {str(e)}") from e

        try:
            payload = response.json()
        except json.JSONDecodeError:
            payload = None
        if response.status_code != 200 or (isinstance(payload, dict) and payload.get("code")):
            raise _error_from_body(response.status_code, response.content)


class CozeChatSession(ChatSession):
    """
    Coze Chat Session

    Wraps the open /v3/chat response and decodes its SSE body into chat events.
    """

    def __init__(self, client: CozeClient, response: httpx.Response):
        self._client = client
        self._response = response
        self.chat_id = ""
        self.conversation_id = ""
        self.finished = False
        self._closed = False

    async def events(self) -> AsyncIterator[ChatEvent]:
        decoder = SSEDecoder()
        try:
            async for chunk in self._response.aiter_bytes():
                for sse in decoder.feed(chunk):
                    if self._is_done(sse):
                        return
                    event = self._to_chat_event(sse)
                    if event is not None:
                        yield event
            for sse in decoder.flush():
                if self._is_done(sse):
                    return
                event = self._to_chat_event(sse)
                if event is not None:
                    yield event
        except httpx.HTTPError as e:
            raise BackendError(message=f"Stream error: {str(e)}") from e

    @staticmethod
    def _is_done(sse: ServerSentEvent) -> bool:
        return sse.event == EVENT_DONE or sse.data == SSE_DONE

    def _to_chat_event(self, sse: ServerSentEvent) -> Optional[ChatEvent]:
        try:
            data = json.loads(sse.data) if sse.data else {}
        except json.JSONDecodeError:
            logger.warning("Skipping undecodable Coze event %s: %r", sse.event, sse.data)
            return None
        if not isinstance(data, dict):
            return None

        if sse.event == EVENT_ERROR:
            self.finished = True
            return ChatFailed(
                chat_id=self.chat_id,
                error=ChatError(code=str(data.get("code", "")), message=str(data.get("msg", ""))),
            )

        if sse.event in (EVENT_CHAT_CREATED, EVENT_CHAT_IN_PROGRESS):
            self.chat_id = str(data.get("id") or self.chat_id)
            self.conversation_id = str(data.get("conversation_id") or self.conversation_id)
            if sse.event == EVENT_CHAT_IN_PROGRESS:
                return ChatInProgress(chat_id=self.chat_id, conversation_id=self.conversation_id)
            return None

        if sse.event == EVENT_MESSAGE_DELTA:
            if data.get("type", "answer") != "answer":
                return None
            return MessageDelta(
                chat_id=str(data.get("chat_id") or self.chat_id),
                content=str(data.get("content") or ""),
            )

        if sse.event == EVENT_CHAT_COMPLETED:
            self.finished = True
            usage = _as_dict(data.get("usage"))
            return ChatCompleted(
                chat_id=str(data.get("id") or self.chat_id),
                usage=Usage(
                    input_count=_as_count(usage, "input_count"),
                    output_count=_as_count(usage, "output_count"),
                    total_count=_as_count(usage, "token_count"),
                ),
            )

        if sse.event == EVENT_CHAT_FAILED:
            self.finished = True
            last_error = _as_dict(data.get("last_error"))
            return ChatFailed(
                chat_id=str(data.get("id") or self.chat_id),
                error=ChatError(
                    code=str(last_error.get("code", "")),
                    message=str(last_error.get("msg", "")),
                ),
            )

        return None

    async def cancel(self) -> None:
        if not self.finished and self.chat_id and self.conversation_id:
            try:
                await self._client.cancel_chat(self.chat_id, self.conversation_id)
                logger.info("Cancelled coze chat %s", self.chat_id)
            except BackendError as e:
                logger.warning("Cancel coze chat %s failed: [%s] %s", self.chat_id, e.code, e.message)
        await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        # client disconnect triggers cancellation, shield so the connection is released
        with anyio.CancelScope(shield=True):
            await self._response.aclose()


class CozeBot(BotClient):
    """
    Coze Bot

    Starts chats against one bot id through the account's client.
    """

    def __init__(self, bot_id: str, client: CozeClient, user_id: Optional[str] = None):
        self.bot_id = bot_id
        self.client = client
        self.user_id = user_id or get_settings().COZE_USER_ID

    def build_payload(self, request: ChatRequest) -> dict[str, Any]:
        """Build the /v3/chat request body."""
        return {
            "bot_id": self.bot_id,
            "user_id": self.user_id,
            "stream": request.stream,
            "auto_save_history": True,
            "additional_messages": [to_coze_message(m) for m in request.messages],
        }

    async def chat(self, request: ChatRequest) -> CozeChatSession:
        response = await self.client.open_chat(self.build_payload(request))
        return CozeChatSession(self.client, response)
