"""
OpenAI Request Schema

Inbound body of POST /v1/chat/completions. Only the fields the gateway acts on are
declared; anything else (temperature, tools, ...) is ignored.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

OBJECT_CHAT_COMPLETION = "chat.completion"
OBJECT_CHAT_COMPLETION_CHUNK = "chat.completion.chunk"
FINISH_REASON_STOP = "stop"
CHAT_ID_PREFIX = "chatcmpl-"


class IncomingMessage(BaseModel):
    """OpenAI message; content is a string or a list of typed parts."""

    role: Optional[str] = None
    content: Any = None


class ChatCompletionRequest(BaseModel):
    """OpenAI Chat Completions request body."""

    model: str = ""
    messages: list[IncomingMessage] = Field(default_factory=list)
    stream: bool = False

    @field_validator("model", "stream", mode="before")
    @classmethod
    def null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("messages", mode="before")
    @classmethod
    def null_messages_as_empty(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [m for m in value if m is not None]
        return value


def completion_id(chat_id: str) -> str:
    return f"{CHAT_ID_PREFIX}{chat_id}"
