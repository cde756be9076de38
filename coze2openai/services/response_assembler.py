"""
Response Assembler

Builds the single chat.completion response for non-streaming callers.
"""

import logging
import time
from typing import Any, Awaitable, Callable, Optional

import anyio
from fastapi.responses import JSONResponse, Response

from coze2openai.common.errors import BackendError
from coze2openai.domain.chat import ChatResult
from coze2openai.domain.openai import (
    FINISH_REASON_STOP,
    OBJECT_CHAT_COMPLETION,
    completion_id,
)
from coze2openai.providers.base import ChatSession

logger = logging.getLogger(__name__)

# nginx convention for "client closed request"; never seen by the client
STATUS_CLIENT_CLOSED_REQUEST = 499


def build_completion(result: ChatResult, model: str, created: Optional[int] = None) -> dict[str, Any]:
    """
    Build an OpenAI chat.completion object from a finished chat

    Token counts are copied from the backend verbatim.
    """
    return {
        "id": completion_id(result.chat_id),
        "object": OBJECT_CHAT_COMPLETION,
        "created": created if created is not None else int(time.time()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": result.answer},
                "finish_reason": FINISH_REASON_STOP,
            }
        ],
        "usage": {
            "prompt_tokens": result.usage.input_count,
            "completion_tokens": result.usage.output_count,
            "total_tokens": result.usage.total_count,
        },
    }


async def wait_for_result(
    session: ChatSession,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    poll_interval: float = 0.5,
    cancel_on_disconnect: bool = True,
) -> Optional[ChatResult]:
    """
    Wait for the chat result unless the client goes away first

    Returns:
        Optional[ChatResult]: The result, or None when the client disconnected
    """
    if is_disconnected is None:
        return await session.get_result()

    result: Optional[ChatResult] = None

    async with anyio.create_task_group() as tg:

        async def fetch() -> None:
            nonlocal result
            result = await session.get_result()
            tg.cancel_scope.cancel()

        async def watch() -> None:
            while not await is_disconnected():
                await anyio.sleep(poll_interval)
            tg.cancel_scope.cancel()

        tg.start_soon(fetch)
        tg.start_soon(watch)

    if result is None:
        logger.info("Client disconnected before the chat completed")
        with anyio.CancelScope(shield=True):
            if cancel_on_disconnect:
                await session.cancel()
            else:
                await session.aclose()
    return result


async def assemble_response(
    session: ChatSession,
    model: str,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    poll_interval: float = 0.5,
    cancel_on_disconnect: bool = True,
) -> Response:
    """
    Block until the chat completes and return the JSON response

    Raises:
        BackendError: The backend reported a failure
    """
    result = await wait_for_result(
        session,
        is_disconnected=is_disconnected,
        poll_interval=poll_interval,
        cancel_on_disconnect=cancel_on_disconnect,
    )
    if result is None:
        return Response(status_code=STATUS_CLIENT_CLOSED_REQUEST)

    if result.error is not None:
        raise BackendError(message=result.error.message, code=result.error.code)

    return JSONResponse(content=build_completion(result, model))
