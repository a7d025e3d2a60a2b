"""Stable, 1-indexed line addressing with windowed read and replace.

Documents are split on ``\\n`` only, so ``join_lines(split_lines(text))`` is
always the original text. Nothing here raises: an out-of-range line number
yields an empty snippet or an unchanged document.
"""

from __future__ import annotations

from typing import Sequence

DEFAULT_CONTEXT_LINES = 3


def split_lines(text: str) -> list[str]:
    return text.split("\n")


def join_lines(lines: Sequence[str]) -> str:
    return "\n".join(lines)


def line_count(text: str) -> int:
    return text.count("\n") + 1


def context_window(
    total_lines: int, line_number: int, context_lines: int = DEFAULT_CONTEXT_LINES
) -> tuple[int, int] | None:
    """Return the inclusive 0-based ``(start, end)`` window around a line.

    The window is clamped to the document. ``None`` means ``line_number`` lies
    outside ``[1, total_lines]``.
    """
    if line_number < 1 or line_number > total_lines:
        return None
    context_lines = max(0, context_lines)
    start = max(0, line_number - 1 - context_lines)
    end = min(total_lines - 1, line_number - 1 + context_lines)
    return start, end


def extract_snippet(
    text: str, line_number: int, context_lines: int = DEFAULT_CONTEXT_LINES
) -> str:
    """Return the lines surrounding ``line_number``, or ``""`` if out of range."""
    lines = split_lines(text)
    window = context_window(len(lines), line_number, context_lines)
    if window is None:
        return ""
    start, end = window
    return join_lines(lines[start : end + 1])


def apply_patch(
    text: str,
    line_number: int,
    replacement: str,
    context_lines: int = DEFAULT_CONTEXT_LINES,
) -> str:
    """Replace the window around ``line_number`` with ``replacement``.

    Out-of-range line numbers leave ``text`` untouched; callers that need to
    know whether a patch happened must validate the line number themselves.
    A head or tail that covers no lines is left out instead of contributing
    a blank line. The replacement always occupies at least one line, so an
    empty replacement leaves a single blank line where the window was.
    """
    lines = split_lines(text)
    window = context_window(len(lines), line_number, context_lines)
    if window is None:
        return text

    start, end = window
    parts: list[str] = []
    if start > 0:
        parts.append(join_lines(lines[:start]))
    parts.append(replacement)
    if end < len(lines) - 1:
        parts.append(join_lines(lines[end + 1 :]))
    return "\n".join(parts)
