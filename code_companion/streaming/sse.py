"""Server-Sent-Events framing for decoded analysis events.

Each event travels as a single ``data: <json>`` record terminated by a blank
line, and the stream ends with ``data: [DONE]``. :class:`SSEReader` undoes
that framing on the consuming side and copes with records split across
network chunks.
"""

from __future__ import annotations

import codecs
import json
import logging
from typing import AsyncIterable, AsyncIterator

from pydantic import ValidationError

from code_companion.models import StreamEvent

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_MARKER = "[DONE]"
DONE_RECORD = f"{DATA_PREFIX}{DONE_MARKER}\n\n"


def format_event(event: StreamEvent) -> str:
    return f"{DATA_PREFIX}{event.model_dump_json(by_alias=True)}\n\n"


async def encode_stream(events: AsyncIterable[StreamEvent]) -> AsyncIterator[str]:
    """Frame every event and close the stream with the ``[DONE]`` record."""
    async for event in events:
        yield format_event(event)
    yield DONE_RECORD


def format_text(text: str) -> str:
    """Frame a plain answer fragment as ``data: {"text": ...}``."""
    payload = json.dumps({"text": text}, ensure_ascii=False)
    return f"{DATA_PREFIX}{payload}\n\n"


async def encode_text_stream(chunks: AsyncIterable[str]) -> AsyncIterator[str]:
    """Frame free-text fragments, such as a streamed answer, then ``[DONE]``."""
    async for text in chunks:
        if text:
            yield format_text(text)
    yield DONE_RECORD


class SSEReader:
    """Incremental splitter that returns the ``data:`` payload of each record.

    Comment lines and fields other than ``data`` are ignored. After the
    ``[DONE]`` record :attr:`done` is set and further input is discarded.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self.done = False

    def feed(self, chunk: str) -> list[str]:
        if self.done or not chunk:
            return []
        self._buffer += chunk.replace("\r\n", "\n")

        payloads: list[str] = []
        while "\n\n" in self._buffer:
            record, _, self._buffer = self._buffer.partition("\n\n")
            payload = self._parse_record(record)
            if payload is None:
                continue
            if payload == DONE_MARKER:
                self.done = True
                self._buffer = ""
                break
            payloads.append(payload)
        return payloads

    @staticmethod
    def _parse_record(record: str) -> str | None:
        data_lines: list[str] = []
        for line in record.split("\n"):
            if not line.startswith("data:"):
                continue
            value = line[len("data:") :]
            if value.startswith(" "):
                value = value[1:]
            data_lines.append(value)
        if not data_lines:
            return None
        return "\n".join(data_lines)


def parse_event(payload: str) -> StreamEvent | None:
    """Turn one ``data:`` payload back into a :class:`StreamEvent`."""
    try:
        return StreamEvent.model_validate(json.loads(payload))
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("Ignoring undecodable stream record: %s", exc)
        return None


async def read_events(
    chunks: AsyncIterable[str | bytes],
) -> AsyncIterator[StreamEvent]:
    """Decode an SSE byte or text stream into events, stopping at ``[DONE]``."""
    reader = SSEReader()
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    async for chunk in chunks:
        text = decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        for payload in reader.feed(text):
            event = parse_event(payload)
            if event is not None:
                yield event
        if reader.done:
            return
