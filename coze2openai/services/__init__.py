"""
Service Layer Module Initialization
"""

from coze2openai.services.merger import fold_system_prompt, merge_system_prompt
from coze2openai.services.registry import BotRegistry, Gateway
from coze2openai.services.request_builder import build_chat_request
from coze2openai.services.response_assembler import assemble_response, build_completion
from coze2openai.services.stream_translator import StreamState, StreamTranslator, relay_stream

__all__ = [
    "fold_system_prompt",
    "merge_system_prompt",
    "BotRegistry",
    "Gateway",
    "build_chat_request",
    "assemble_response",
    "build_completion",
    "StreamState",
    "StreamTranslator",
    "relay_stream",
]
