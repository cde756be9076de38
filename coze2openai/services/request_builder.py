"""
Request Builder

Turns OpenAI messages into the backend chat request.
"""

from typing import Iterable

from coze2openai.domain.chat import ChatRequest
from coze2openai.domain.message import Message, Role, normalize_message
from coze2openai.domain.openai import IncomingMessage
from coze2openai.services.merger import OrphanPolicy, merge_system_prompt


def build_chat_request(
    messages: Iterable[IncomingMessage],
    orphan_policy: OrphanPolicy = "drop",
) -> ChatRequest:
    """
    Build the backend chat request

    System messages are collected and merged into the last user message; roles other
    than system/user/assistant and messages with unusable content are dropped.

    Args:
        messages: Messages from the OpenAI request, in order
        orphan_policy: What to do with system messages when no user message exists

    Returns:
        ChatRequest: Request with merged messages, always in streaming mode
    """
    sysp: list[Message] = []
    msgs: list[Message] = []
    for incoming in messages:
        message = normalize_message(incoming.role, incoming.content)
        if message is None:
            continue
        if message.role == Role.SYSTEM:
            sysp.append(message)
        else:
            msgs.append(message)

    merge_system_prompt(sysp, msgs, orphan_policy)
    return ChatRequest(messages=tuple(msgs), stream=True)
