"""
Backend bot adapter module initialization
"""

from coze2openai.providers.base import BotClient, ChatSession
from coze2openai.providers.coze_client import CozeBot, CozeChatSession, CozeClient

__all__ = [
    "BotClient",
    "ChatSession",
    "CozeBot",
    "CozeChatSession",
    "CozeClient",
]
