"""
Unified AI - Server-Sent Events Decoding

Incremental decoder for text/event-stream bodies. Bytes are buffered until a
full line is available, so records split across chunks (including multi-byte
UTF-8 sequences) decode correctly.
"""

import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

DONE_MARKER = "[DONE]"


@dataclass
class SseEvent:
    """One dispatched event-stream record."""

    data: str
    event: str | None = None

    @property
    def is_done_marker(self) -> bool:
        return self.data.strip() == DONE_MARKER


@dataclass
class StreamState:
    """Accumulates terminal metadata while a chat stream is decoded."""

    metadata: dict[str, Any] = field(default_factory=dict)
    finished: bool = False


async def iter_sse_events(chunks: AsyncIterator[bytes]) -> AsyncIterator[SseEvent]:
    """
    Decode an event stream into records.

    A record is dispatched on a blank line; a trailing record without one is
    dispatched when the body ends. Comment lines (":") are ignored.
    """
    buffer = b""
    data_lines: list[str] = []
    event_name: str | None = None

    def dispatch() -> SseEvent | None:
        nonlocal data_lines, event_name
        record = SseEvent(data="\n".join(data_lines), event=event_name) if data_lines else None
        data_lines = []
        event_name = None
        return record

    async for chunk in chunks:
        buffer += chunk
        while b"\n" in buffer:
            raw, buffer = buffer.split(b"\n", 1)
            line = raw.rstrip(b"\r").decode("utf-8", errors="replace")

            if not line:
                record = dispatch()
                if record is not None:
                    yield record
                continue
            if line.startswith(":"):
                continue

            name, _, value = line.partition(":")
            if value.startswith(" "):
                value = value[1:]
            if name == "data":
                data_lines.append(value)
            elif name == "event":
                event_name = value

    if buffer.strip():
        line = buffer.rstrip(b"\r").decode("utf-8", errors="replace")
        name, _, value = line.partition(":")
        if name == "data":
            data_lines.append(value[1:] if value.startswith(" ") else value)
    record = dispatch()
    if record is not None:
        yield record


def parse_event_json(event: SseEvent) -> Any | None:
    """Decode a record's JSON payload; malformed records yield None."""
    try:
        return json.loads(event.data)
    except ValueError:
        logger.debug(f"Skipping malformed stream record: {event.data[:100]!r}")
        return None
