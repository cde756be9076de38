"""
Content Normalization Unit Tests
"""

import pytest

from coze2openai.domain.message import (
    ImagePart,
    Message,
    Parts,
    Role,
    Text,
    TextPart,
    normalize_content,
    normalize_message,
)


def test_string_content_becomes_text():
    assert normalize_content("hello") == Text("hello")


@pytest.mark.parametrize("value", ["", "hello", "multi\nline"])
def test_text_normalization_is_idempotent(value):
    once = normalize_content(value)
    assert normalize_content(once) == once


def test_parts_keep_order_and_drop_unknown_types():
    content = [
        {"type": "text", "text": "first"},
        {"type": "audio", "audio": {"data": "..."}},
        {"type": "image_url", "image_url": {"url": "https://img/1.png"}},
        {"text": "no type"},
        "bare string",
        {"type": "text", "text": "second"},
    ]

    result = normalize_content(content)

    assert result == Parts((
        TextPart("first"),
        ImagePart("https://img/1.png"),
        TextPart("second"),
    ))


def test_text_part_without_text_becomes_empty_string():
    result = normalize_content([{"type": "text"}, {"type": "text", "text": 42}])
    assert result == Parts((TextPart(""), TextPart("")))


def test_image_part_without_url_is_dropped():
    content = [
        {"type": "image_url"},
        {"type": "image_url", "image_url": "https://img/plain-string.png"},
        {"type": "image_url", "image_url": {"detail": "high"}},
        {"type": "image_url", "image_url": {"url": 7}},
    ]
    assert normalize_content(content) == Parts(())


@pytest.mark.parametrize("value", [None, 42, {"type": "text", "text": "x"}])
def test_unsupported_content_shape(value):
    assert normalize_content(value) is None


def test_normalize_message():
    assert normalize_message("user", "hi") == Message(role=Role.USER, content=Text("hi"))
    assert normalize_message("system", [{"type": "text", "text": "rules"}]) == Message(
        role=Role.SYSTEM, content=Parts((TextPart("rules"),))
    )


@pytest.mark.parametrize("role", [None, "tool", "function", "developer"])
def test_normalize_message_rejects_unknown_roles(role):
    assert normalize_message(role, "hi") is None


def test_normalize_message_rejects_unusable_content():
    assert normalize_message("user", None) is None
