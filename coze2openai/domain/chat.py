"""
Backend Chat Domain Model

Backend-facing request, lifecycle events and blocking result.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from coze2openai.domain.message import Message


@dataclass(frozen=True)
class ChatRequest:
    """
    Backend Chat Request

    System messages are already merged away; the backend is always asked to stream.
    """
    messages: tuple[Message, ...] = ()
    stream: bool = True


@dataclass(frozen=True)
class Usage:
    """Token counts reported by the backend."""
    input_count: int = 0
    output_count: int = 0
    total_count: int = 0


@dataclass(frozen=True)
class ChatError:
    """Failure reported by the backend (code and message passed through verbatim)."""
    code: str
    message: str


@dataclass(frozen=True)
class ChatInProgress:
    """The backend started producing the answer."""
    chat_id: str
    conversation_id: str = ""


@dataclass(frozen=True)
class MessageDelta:
    """Incremental answer text."""
    chat_id: str
    content: str


@dataclass(frozen=True)
class ChatCompleted:
    """The chat finished successfully."""
    chat_id: str
    usage: Usage = field(default_factory=Usage)


@dataclass(frozen=True)
class ChatFailed:
    """The chat failed after it was accepted."""
    chat_id: str
    error: ChatError


ChatEvent = Union[ChatInProgress, MessageDelta, ChatCompleted, ChatFailed]


@dataclass
class ChatResult:
    """
    Blocking Chat Result

    The full answer of one chat lifecycle.
    """
    chat_id: str = ""
    answer: str = ""
    usage: Usage = field(default_factory=Usage)
    error: Optional[ChatError] = None
