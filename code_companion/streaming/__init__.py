"""Decoding of streamed LLM analyses and their Server-Sent-Events framing."""

from __future__ import annotations

from .decoder import (
    ANALYSIS_SENTINEL,
    ISSUE_SENTINEL,
    IssueStreamDecoder,
    StreamState,
    decode_fragments,
    decode_stream,
    extract_issue,
)
from .sse import (
    DATA_PREFIX,
    DONE_MARKER,
    DONE_RECORD,
    SSEReader,
    encode_stream,
    encode_text_stream,
    format_event,
    format_text,
    parse_event,
    read_events,
)

__all__ = [
    "ANALYSIS_SENTINEL",
    "DATA_PREFIX",
    "DONE_MARKER",
    "DONE_RECORD",
    "ISSUE_SENTINEL",
    "IssueStreamDecoder",
    "SSEReader",
    "StreamState",
    "decode_fragments",
    "decode_stream",
    "encode_stream",
    "encode_text_stream",
    "extract_issue",
    "format_event",
    "format_text",
    "parse_event",
    "read_events",
]
