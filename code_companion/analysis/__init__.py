"""Local, deterministic analysis: line addressing, language tags and the heuristic scanner."""

from __future__ import annotations

from .language import detect_language, is_text_file
from .line_model import (
    DEFAULT_CONTEXT_LINES,
    apply_patch,
    context_window,
    extract_snippet,
    join_lines,
    line_count,
    split_lines,
)
from .scanner import DEFAULT_SEVERITY, find_basic_issues, matching_rules, scan_sources

__all__ = [
    "DEFAULT_CONTEXT_LINES",
    "DEFAULT_SEVERITY",
    "apply_patch",
    "context_window",
    "detect_language",
    "extract_snippet",
    "find_basic_issues",
    "is_text_file",
    "join_lines",
    "line_count",
    "matching_rules",
    "scan_sources",
    "split_lines",
]
