"""
Backend Bot Client Base Class

Defines the abstract interface the translation core consumes: a bot that starts chats,
and the chat session it returns.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator

from coze2openai.common.errors import BackendError
from coze2openai.domain.chat import (
    ChatCompleted,
    ChatError,
    ChatEvent,
    ChatFailed,
    ChatInProgress,
    ChatRequest,
    ChatResult,
    MessageDelta,
)

STREAM_INTERRUPTED = ChatError(
    code="stream_interrupted",
    message="The chat stream ended before the answer was completed.",
)


class ChatSession(ABC):
    """
    One running chat lifecycle

    The event sequence can be consumed once, either directly through `events()` or
    through `get_result()`.
    """

    @abstractmethod
    def events(self) -> AsyncIterator[ChatEvent]:
        """
        Iterate backend lifecycle events

        Yields:
            ChatEvent: ChatInProgress, MessageDelta, ChatCompleted or ChatFailed

        Raises:
            BackendError: Transport failure while reading
        """

    @abstractmethod
    async def cancel(self) -> None:
        """Ask the backend to stop producing this chat and release the session."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release the underlying connection."""

    async def get_result(self) -> ChatResult:
        """
        Wait for the chat to finish and return the full answer

        Returns:
            ChatResult: Answer and usage, or `error` set when the chat failed
        """
        result = ChatResult()
        answer: list[str] = []
        completed = False
        try:
            async for event in self.events():
                if isinstance(event, ChatInProgress):
                    result.chat_id = event.chat_id
                elif isinstance(event, MessageDelta):
                    result.chat_id = result.chat_id or event.chat_id
                    answer.append(event.content)
                elif isinstance(event, ChatCompleted):
                    result.chat_id = event.chat_id or result.chat_id
                    result.usage = event.usage
                    completed = True
                    break
                elif isinstance(event, ChatFailed):
                    result.error = event.error
                    break
        except BackendError as e:
            result.error = ChatError(code=e.code, message=e.message)
        finally:
            await self.aclose()

        result.answer = "".join(answer)
        if not completed and result.error is None:
            result.error = STREAM_INTERRUPTED
        return result


class BotClient(ABC):
    """
    Backend Bot Abstract Base Class

    One bot on the backend; the registry picks an instance per request.
    """

    bot_id: str

    @abstractmethod
    async def chat(self, request: ChatRequest) -> ChatSession:
        """
        Start a chat

        Args:
            request: Backend chat request

        Returns:
            ChatSession: Handle over the chat lifecycle

        Raises:
            BackendError: The backend rejected the call
        """

    async def aclose(self) -> None:
        """Release resources held by the bot (no-op by default)."""
