"""
System Prompt Merger

Coze has no system role, so system messages are folded into the most recent user message.
"""

import logging
from typing import Literal

from coze2openai.common.errors import InvalidRequestError
from coze2openai.domain.message import (
    ImagePart,
    Message,
    Parts,
    Role,
    Text,
    TextPart,
)

logger = logging.getLogger(__name__)

OrphanPolicy = Literal["drop", "standalone", "reject"]


def _is_pure_text(sysp: list[Message], target: Message) -> bool:
    if not isinstance(target.content, Text):
        return False
    for message in sysp:
        if isinstance(message.content, Parts) and not message.content.is_text_only:
            return False
    return True


def _fold_text(sysp: list[Message], target: Text) -> Text:
    buff: list[str] = []
    for message in sysp:
        if isinstance(message.content, Text):
            buff.append(message.content.text + "\n")
        else:
            for part in message.content.parts:
                buff.append(part.text + "\n")
    buff.append(target.text)
    return Text("".join(buff))


def _fold_parts(sysp: list[Message], target: Text | Parts) -> Parts:
    buff: list[str] = []
    images: list[ImagePart] = []

    for message in sysp:
        if isinstance(message.content, Text):
            buff.append(message.content.text + "\n")
            continue
        for part in message.content.parts:
            if isinstance(part, TextPart):
                buff.append(part.text + "\n")
            else:
                images.append(part)

    if isinstance(target, Text):
        buff.append(target.text)
    else:
        for part in target.parts:
            if isinstance(part, TextPart):
                buff.append(part.text + "\n")
            else:
                images.append(part)

    return Parts((TextPart("".join(buff)), *images))


def fold_system_prompt(sysp: list[Message], target: Message) -> Message:
    """
    Fold system messages into one user message

    Pure text (every system message and the target are text only) yields Text;
    otherwise yields Parts whose first part holds all the text and whose remaining
    parts are the images, system images first.
    """
    if _is_pure_text(sysp, target):
        content = _fold_text(sysp, target.content)
    else:
        content = _fold_parts(sysp, target.content)
    return Message(role=target.role, content=content)


def merge_system_prompt(
    sysp: list[Message],
    msgs: list[Message],
    orphan_policy: OrphanPolicy = "drop",
) -> list[Message]:
    """
    Merge system messages into the last user message of `msgs`

    The target keeps its position and role; `msgs` is updated in place and returned.

    Args:
        sysp: System messages in request order
        msgs: User/assistant messages in request order
        orphan_policy: Behaviour when `msgs` holds no user message

    Returns:
        list[Message]: The updated `msgs`

    Raises:
        InvalidRequestError: No user message and orphan_policy is "reject"
    """
    if not sysp:
        return msgs

    for i in range(len(msgs) - 1, -1, -1):
        if msgs[i].role == Role.USER:
            msgs[i] = fold_system_prompt(sysp, msgs[i])
            return msgs

    if orphan_policy == "reject":
        raise InvalidRequestError(
            message="System messages require at least one user message to attach to.",
        )
    if orphan_policy == "standalone":
        msgs.append(fold_system_prompt(sysp, Message(role=Role.USER, content=Text(""))))
        return msgs

    logger.debug("No user message found, dropping %d system message(s)", len(sysp))
    return msgs
