"""
SSE Codec Unit Tests
"""

from coze2openai.common.sse import ServerSentEvent, SSEDecoder, format_sse


def test_decoder_reads_event_and_data_without_space():
    decoder = SSEDecoder()

    events = decoder.feed(b'event:conversation.message.delta\ndata:{"content":"Hi"}\n\n')

    assert events == [ServerSentEvent(event="conversation.message.delta", data='{"content":"Hi"}')]


def test_decoder_handles_split_chunks_and_crlf():
    decoder = SSEDecoder()

    assert decoder.feed(b"event: done\r\nda") == []
    assert decoder.feed(b'ta: "[DONE]"\r\n\r\nevent: error\n') == [
        ServerSentEvent(event="done", data='"[DONE]"'),
    ]
    assert decoder.flush() == [ServerSentEvent(event="error", data="")]


def test_decoder_ignores_comments_and_joins_data_lines():
    decoder = SSEDecoder()

    events = decoder.feed(b": keep-alive\n\ndata: a\ndata: b\nid: 3\n\n")

    assert events == [ServerSentEvent(event="", data="a\nb")]


def test_format_sse():
    assert format_sse("[DONE]") == "data: [DONE]\n\n"
    assert format_sse({"content": "你好"}) == 'data: {"content":"你好"}\n\n'
