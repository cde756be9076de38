"""
Server-Sent Events encoding and decoding

Decodes the Coze event stream and encodes the OpenAI chunk stream.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

SSE_DONE = "[DONE]"


@dataclass(frozen=True)
class ServerSentEvent:
    event: str
    data: str


class SSEDecoder:
    """
    Simple SSE Decoder: Splits bytes stream into event blocks and extracts event/data fields.

    - Uses empty line (\n\n) as event boundary
    - Supports CRLF (\r\n)
    - Accepts "field:value" with or without a space after the colon
    - Ignores comments, id and retry fields
    """

    def __init__(self) -> None:
        self._buf = b""

    def feed(self, chunk: bytes) -> list[ServerSentEvent]:
        """
        Append bytes and return the events completed by them.
        """
        if not chunk:
            return []

        data = (self._buf + chunk).replace(b"\r\n", b"\n")
        parts = data.split(b"\n\n")
        self._buf = parts.pop()  # Keep last incomplete event

        events: list[ServerSentEvent] = []
        for block in parts:
            event = self._parse_block(block)
            if event is not None:
                events.append(event)
        return events

    def flush(self) -> list[ServerSentEvent]:
        """Return the trailing event when the stream ends without a blank line."""
        block, self._buf = self._buf, b""
        event = self._parse_block(block.replace(b"\r\n", b"\n"))
        return [event] if event is not None else []

    @staticmethod
    def _parse_block(block: bytes) -> Optional[ServerSentEvent]:
        event_name = ""
        data_lines: list[bytes] = []
        for line in block.split(b"\n"):
            if not line or line.startswith(b":"):
                continue
            name, _, value = line.partition(b":")
            if value.startswith(b" "):
                value = value[1:]
            if name == b"event":
                event_name = value.decode("utf-8", errors="ignore")
            elif name == b"data":
                data_lines.append(value)
        if not event_name and not data_lines:
            return None
        return ServerSentEvent(
            event=event_name,
            data=b"\n".join(data_lines).decode("utf-8", errors="ignore"),
        )


def format_sse(payload: Any) -> str:
    """
    Encode one outbound SSE frame

    Strings (the [DONE] sentinel) are sent verbatim, everything else as JSON.
    """
    if isinstance(payload, str):
        data = payload
    else:
        data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return f"data: {data}\n\n"
