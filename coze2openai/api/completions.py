"""
OpenAI Chat Completions API

Serves the OpenAI-compatible chat endpoint on top of Coze bots.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response, StreamingResponse
from pydantic import ValidationError

from coze2openai.api.deps import GatewayDep, SettingsDep, verify_api_token
from coze2openai.common.errors import InvalidRequestError
from coze2openai.config import DEFAULT_ENDPOINT, DEFAULT_METHOD
from coze2openai.domain.openai import ChatCompletionRequest
from coze2openai.services.request_builder import build_chat_request
from coze2openai.services.response_assembler import assemble_response
from coze2openai.services.stream_translator import StreamTranslator, relay_stream

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


async def chat_completions(
    request: Request,
    gateway: GatewayDep,
    settings: SettingsDep,
) -> Response:
    """
    OpenAI Chat Completions API

    The Coze chat is always streamed; `stream` only decides whether the caller gets
    SSE chunks or one JSON completion.
    """
    raw_body = await request.body()
    try:
        body = ChatCompletionRequest.model_validate_json(raw_body)
    except ValidationError as e:
        logger.debug("Invalid request body: %s", e)
        raise InvalidRequestError() from e

    bot = gateway.registry.select(body.model)
    chat_request = build_chat_request(body.messages, settings.ORPHAN_SYSTEM_PROMPT)

    logger.debug(
        "Chat request: model=%s bot=%s messages=%d stream=%s",
        body.model,
        bot.bot_id,
        len(chat_request.messages),
        body.stream,
    )
    session = await bot.chat(chat_request)

    if body.stream:
        return StreamingResponse(
            relay_stream(
                session,
                StreamTranslator(model=body.model),
                is_disconnected=request.is_disconnected,
                cancel_on_disconnect=settings.CANCEL_ON_DISCONNECT,
            ),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    return await assemble_response(
        session,
        body.model,
        is_disconnected=request.is_disconnected,
        poll_interval=settings.DISCONNECT_POLL_INTERVAL,
        cancel_on_disconnect=settings.CANCEL_ON_DISCONNECT,
    )


def create_router(endpoint: str = DEFAULT_ENDPOINT, method: str = DEFAULT_METHOD) -> APIRouter:
    """
    Build the chat completions router

    Args:
        endpoint: Route path
        method: HTTP method

    Returns:
        APIRouter: Router with the authenticated chat endpoint
    """
    router = APIRouter(tags=["Chat Completions"])
    router.add_api_route(
        endpoint,
        chat_completions,
        methods=[method],
        dependencies=[Depends(verify_api_token)],
    )
    return router
