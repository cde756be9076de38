"""
Domain Model Module Initialization
"""

from coze2openai.domain.message import (
    Content,
    ContentPart,
    ImagePart,
    Message,
    Parts,
    Role,
    Text,
    TextPart,
    normalize_content,
    normalize_message,
)
from coze2openai.domain.chat import (
    ChatCompleted,
    ChatError,
    ChatEvent,
    ChatFailed,
    ChatInProgress,
    ChatRequest,
    ChatResult,
    MessageDelta,
    Usage,
)

__all__ = [
    "Content",
    "ContentPart",
    "ImagePart",
    "Message",
    "Parts",
    "Role",
    "Text",
    "TextPart",
    "normalize_content",
    "normalize_message",
    "ChatCompleted",
    "ChatError",
    "ChatEvent",
    "ChatFailed",
    "ChatInProgress",
    "ChatRequest",
    "ChatResult",
    "MessageDelta",
    "Usage",
]
