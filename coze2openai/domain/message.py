"""
Message Domain Model

Canonical representation of chat messages, decided once at the request boundary.
Content is either plain text (Text) or an ordered list of text/image parts (Parts).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union


class Role(str, Enum):
    """Message roles understood by the gateway."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class TextPart:
    """Text fragment of a multi-part message."""
    text: str = ""


@dataclass(frozen=True)
class ImagePart:
    """Image referenced by URL (http(s) or data URI)."""
    url: str


ContentPart = Union[TextPart, ImagePart]


@dataclass(frozen=True)
class Text:
    """Pure text content."""
    text: str


@dataclass(frozen=True)
class Parts:
    """Mixed content: text and image parts in encounter order."""
    parts: tuple[ContentPart, ...] = ()

    @property
    def is_text_only(self) -> bool:
        return all(isinstance(part, TextPart) for part in self.parts)


Content = Union[Text, Parts]


@dataclass(frozen=True)
class Message:
    """A normalized chat message."""
    role: Role
    content: Content


def _normalize_part(item: Any) -> Optional[ContentPart]:
    if not isinstance(item, dict):
        return None

    part_type = item.get("type")
    if part_type == "text":
        text = item.get("text")
        return TextPart(text if isinstance(text, str) else "")

    if part_type == "image_url":
        image = item.get("image_url")
        if not isinstance(image, dict):
            return None
        url = image.get("url")
        if not isinstance(url, str):
            return None
        return ImagePart(url)

    return None


def normalize_content(content: Any) -> Optional[Content]:
    """
    Convert an OpenAI message `content` value into canonical content

    - str -> Text
    - list -> Parts, keeping only "text" and "image_url" parts (order preserved)
    - already canonical Text/Parts -> returned unchanged

    Args:
        content: Raw content from the request body

    Returns:
        Optional[Content]: Canonical content, or None if the shape is not usable
    """
    if isinstance(content, (Text, Parts)):
        return content
    if isinstance(content, str):
        return Text(content)
    if isinstance(content, list):
        parts = []
        for item in content:
            part = _normalize_part(item)
            if part is not None:
                parts.append(part)
        return Parts(tuple(parts))
    return None


def normalize_message(role: Any, content: Any) -> Optional[Message]:
    """
    Build a canonical message from a raw role/content pair

    Returns None when the role is not system/user/assistant or the content is unusable;
    callers discard such messages.
    """
    try:
        normalized_role = Role(role)
    except ValueError:
        return None

    normalized_content = normalize_content(content)
    if normalized_content is None:
        return None
    return Message(role=normalized_role, content=normalized_content)
