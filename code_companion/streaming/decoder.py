"""Incremental decoder for streamed LLM analyses.

The model is prompted to interleave free-form text with JSON issue objects,
to print ``ISSUE_COMPLETE`` after each object and ``ANALYSIS_COMPLETE``
before a closing summary. Fragments arrive with arbitrary boundaries, so the
decoder accumulates them in a buffer and only emits a record once its
sentinel has been seen.

A malformed record is logged and skipped; it never ends the stream. Text left
over when a stream ends without a sentinel is flushed as a ``partial`` event
so nothing the model produced is lost.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Iterable, Iterator

from pydantic import ValidationError

from code_companion.models import Issue, StreamEvent

logger = logging.getLogger(__name__)

ISSUE_SENTINEL = "ISSUE_COMPLETE"
ANALYSIS_SENTINEL = "ANALYSIS_COMPLETE"

# First "{" up to the first "}" after it.
_OBJECT_PATTERN = re.compile(r"\{[\s\S]*?\}")


def extract_issue(segment: str) -> Issue | None:
    """Parse the first brace-delimited object in ``segment`` as an :class:`Issue`.

    Returns ``None`` when there is no object, when it is not valid JSON or
    when it lacks a mandatory issue field.
    """
    match = _OBJECT_PATTERN.search(segment)
    if match is None:
        if segment.strip():
            logger.debug("No issue object found in segment: %.80r", segment)
        return None

    fragment = match.group(0)
    try:
        payload = json.loads(fragment)
    except json.JSONDecodeError as exc:
        logger.warning("Skipping malformed issue JSON (%s): %.200s", exc, fragment)
        return None

    try:
        return Issue.model_validate(payload)
    except ValidationError as exc:
        logger.warning(
            "Skipping issue payload missing required fields: %s",
            "; ".join(err["msg"] for err in exc.errors()),
        )
        return None


@dataclass
class StreamState:
    """Unconsumed tail of one stream.

    Once ``completed`` is set the buffer holds the summary text that follows
    ``ANALYSIS_COMPLETE``.
    """

    buffer: str = ""
    completed: bool = False


class IssueStreamDecoder:
    """Push-style decoder: call :meth:`feed` per fragment, then :meth:`finish`.

    One instance decodes exactly one stream.
    """

    def __init__(self) -> None:
        self.state = StreamState()
        self._finished = False

    @property
    def completed(self) -> bool:
        return self.state.completed

    def feed(self, fragment: str) -> list[StreamEvent]:
        """Consume one fragment and return the records it completed."""
        if self._finished:
            raise RuntimeError("Cannot feed a decoder after finish() was called.")
        if not fragment:
            return []

        state = self.state
        state.buffer += fragment
        if state.completed:
            # Everything after ANALYSIS_COMPLETE belongs to the summary.
            return []

        events: list[StreamEvent] = []
        while ISSUE_SENTINEL in state.buffer:
            segment, _, state.buffer = state.buffer.partition(ISSUE_SENTINEL)
            issue = extract_issue(segment)
            if issue is not None:
                events.append(StreamEvent.issue(issue))

        if ANALYSIS_SENTINEL in state.buffer:
            segment, _, state.buffer = state.buffer.partition(ANALYSIS_SENTINEL)
            if segment.strip():
                issue = extract_issue(segment)
                if issue is not None:
                    events.append(StreamEvent.issue(issue))
            state.completed = True

        return events

    def finish(self) -> list[StreamEvent]:
        """Signal the end of the stream and flush what remains.

        Returns the summary event if ``ANALYSIS_COMPLETE`` was seen, otherwise
        a ``partial`` event for any non-blank leftover text.
        """
        if self._finished:
            return []
        self._finished = True

        text = self.state.buffer.strip()
        self.state.buffer = ""
        if self.state.completed:
            return [StreamEvent.summary(text)]
        if text:
            logger.info("Stream ended without a sentinel; flushing %d chars", len(text))
            return [StreamEvent.partial(text)]
        return []


def decode_fragments(fragments: Iterable[str]) -> Iterator[StreamEvent]:
    """Decode a synchronous sequence of fragments."""
    decoder = IssueStreamDecoder()
    try:
        for fragment in fragments:
            yield from decoder.feed(fragment)
    except Exception:
        # Flush what was received before the source failed, then surface the error
        yield from decoder.finish()
        raise
    yield from decoder.finish()


async def decode_stream(fragments: AsyncIterable[str]) -> AsyncIterator[StreamEvent]:
    """Decode fragments as they arrive from an asynchronous source.

    The consumer may stop iterating at any point; the decoder holds no
    resources besides its buffer. If the source raises, the buffered text
    is flushed as events before the exception propagates.
    """
    decoder = IssueStreamDecoder()
    try:
        async for fragment in fragments:
            for event in decoder.feed(fragment):
                yield event
    except Exception:
        for event in decoder.finish():
            yield event
        raise
    for event in decoder.finish():
        yield event
