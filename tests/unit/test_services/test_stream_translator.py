"""
Stream Translator Unit Tests
"""

import json

import pytest

from coze2openai.common.errors import BackendError
from coze2openai.domain.chat import (
    ChatCompleted,
    ChatError,
    ChatFailed,
    ChatInProgress,
    MessageDelta,
    Usage,
)
from coze2openai.services.stream_translator import StreamState, StreamTranslator, relay_stream


def parse_frames(frames):
    payloads = []
    for frame in frames:
        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        data = frame[len("data: "):-2]
        payloads.append(data if data == "[DONE]" else json.loads(data))
    return payloads


HAPPY_PATH = [
    ChatInProgress(chat_id="c1", conversation_id="conv1"),
    MessageDelta(chat_id="c1", content="Hi"),
    MessageDelta(chat_id="c1", content=" there"),
    ChatCompleted(chat_id="c1", usage=Usage(2, 3, 5)),
]


class TestStreamTranslator:

    def test_transition_table(self):
        translator = StreamTranslator(model="gpt-4o", clock=lambda: 1700000000.5)
        assert translator.state == StreamState.STARTED

        first = translator.translate(HAPPY_PATH[0])
        assert translator.state == StreamState.STREAMING
        assert first[0]["choices"][0]["delta"] == {"role": "assistant", "content": ""}
        assert first[0]["choices"][0]["finish_reason"] is None

        delta = translator.translate(HAPPY_PATH[1])
        assert delta[0]["choices"][0]["delta"] == {"content": "Hi"}
        assert "role" not in delta[0]["choices"][0]["delta"]

        last = translator.translate(HAPPY_PATH[3])
        assert translator.state == StreamState.COMPLETED
        assert last[0]["choices"][0]["delta"] == {}
        assert last[0]["choices"][0]["finish_reason"] == "stop"
        assert last[1] == "[DONE]"

    def test_chunk_envelope(self):
        translator = StreamTranslator(model="gpt-4o", clock=lambda: 1700000000.9)

        chunk = translator.translate(HAPPY_PATH[1])[0]

        assert chunk["id"] == "chatcmpl-c1"
        assert chunk["object"] == "chat.completion.chunk"
        assert chunk["created"] == 1700000000
        assert chunk["model"] == "gpt-4o"
        assert chunk["choices"][0]["index"] == 0

    def test_created_never_goes_backwards(self):
        ticks = iter([100.0, 99.0, 101.0])
        translator = StreamTranslator(model="m", clock=lambda: next(ticks))

        created = [translator.translate(MessageDelta("c", "x"))[0]["created"] for _ in range(3)]

        assert created == [100, 100, 101]

    def test_unknown_events_are_ignored(self):
        translator = StreamTranslator(model="m")
        assert translator.translate(object()) == []
        assert translator.state == StreamState.STARTED

    def test_failure_emits_error_frame_then_done(self):
        translator = StreamTranslator(model="m")
        translator.translate(HAPPY_PATH[0])

        payloads = translator.translate(ChatFailed(chat_id="c1", error=ChatError("4011", "quota exceeded")))

        assert payloads == [{"error": {"code": "4011", "message": "quota exceeded"}}, "[DONE]"]
        assert translator.state == StreamState.FAILED
        assert translator.translate(HAPPY_PATH[1]) == []


class TestRelayStream:

    @pytest.mark.asyncio
    async def test_happy_path_emits_four_chunks_and_done(self, fake_session_factory):
        session = fake_session_factory(HAPPY_PATH)

        frames = [f async for f in relay_stream(session, StreamTranslator(model="m"))]
        payloads = parse_frames(frames)

        assert len(payloads) == 5
        assert payloads[-1] == "[DONE]"
        finishes = [p["choices"][0]["finish_reason"] for p in payloads[:-1]]
        assert finishes == [None, None, None, "stop"]
        assert "".join(p["choices"][0]["delta"].get("content", "") for p in payloads[:-1]) == "Hi there"
        assert {p["id"] for p in payloads[:-1]} == {"chatcmpl-c1"}
        assert session.closed is True
        assert session.cancelled is False

    @pytest.mark.asyncio
    async def test_client_disconnect_stops_emission_and_cancels_backend(self, fake_session_factory):
        session = fake_session_factory(HAPPY_PATH)
        checks = iter([False, False, True, True])

        async def is_disconnected():
            return next(checks)

        frames = [
            f async for f in relay_stream(session, StreamTranslator(model="m"), is_disconnected=is_disconnected)
        ]

        assert len(frames) == 2
        assert "[DONE]" not in "".join(frames)
        assert session.cancelled is True
        assert session.closed is True

    @pytest.mark.asyncio
    async def test_disconnect_without_backend_cancel(self, fake_session_factory):
        session = fake_session_factory(HAPPY_PATH)

        async def is_disconnected():
            return True

        frames = [
            f
            async for f in relay_stream(
                session,
                StreamTranslator(model="m"),
                is_disconnected=is_disconnected,
                cancel_on_disconnect=False,
            )
        ]

        assert frames == []
        assert session.cancelled is False
        assert session.closed is True

    @pytest.mark.asyncio
    async def test_stream_ending_early_is_closed_with_error(self, fake_session_factory):
        session = fake_session_factory(HAPPY_PATH[:2])

        payloads = parse_frames([f async for f in relay_stream(session, StreamTranslator(model="m"))])

        assert payloads[-2]["error"]["code"] == "stream_interrupted"
        assert payloads[-1] == "[DONE]"
        assert session.cancelled is False
        assert session.closed is True

    @pytest.mark.asyncio
    async def test_transport_error_mid_stream(self, fake_session_factory):
        session = fake_session_factory(HAPPY_PATH[:2], error=BackendError("Stream error: reset"))

        payloads = parse_frames([f async for f in relay_stream(session, StreamTranslator(model="m"))])

        assert len(payloads) == 4
        assert payloads[2] == {"error": {"code": "upstream_error", "message": "Stream error: reset"}}
        assert payloads[3] == "[DONE]"
        assert session.closed is True

    @pytest.mark.asyncio
    async def test_relay_stops_reading_after_completion(self, fake_session_factory):
        session = fake_session_factory(HAPPY_PATH + [MessageDelta(chat_id="c1", content="late")])

        frames = [f async for f in relay_stream(session, StreamTranslator(model="m"))]

        assert len(frames) == 5
        assert session.yielded == 4
