"""
Test Configuration Module
"""

import pytest

from coze2openai.common.errors import BackendError
from coze2openai.domain.chat import ChatRequest
from coze2openai.providers.base import BotClient, ChatSession


class FakeChatSession(ChatSession):
    """Chat session replaying a fixed list of events."""

    def __init__(self, events=None, error: BackendError | None = None):
        self._events = list(events or [])
        self._error = error
        self.yielded = 0
        self.cancelled = False
        self.closed = False

    async def events(self):
        for event in self._events:
            self.yielded += 1
            yield event
        if self._error is not None:
            raise self._error

    async def cancel(self) -> None:
        self.cancelled = True
        await self.aclose()

    async def aclose(self) -> None:
        self.closed = True


class FakeBot(BotClient):
    """Bot returning a prepared session and recording requests."""

    def __init__(self, bot_id: str = "bot-1", session: FakeChatSession | None = None, error: BackendError | None = None):
        self.bot_id = bot_id
        self.session = session or FakeChatSession()
        self.error = error
        self.requests: list[ChatRequest] = []

    async def chat(self, request: ChatRequest) -> FakeChatSession:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.session


@pytest.fixture
def fake_session_factory():
    return FakeChatSession


@pytest.fixture
def fake_bot_factory():
    return FakeBot
