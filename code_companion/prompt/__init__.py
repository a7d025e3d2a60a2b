"""Prompt templates for the analysis and question flows."""

from __future__ import annotations

from .render_prompt import (
    ANALYSIS_TEMPLATE,
    QUESTION_TEMPLATE,
    STREAM_TEMPLATE,
    SYSTEM_TEMPLATE,
    render_system_prompt,
    render_template,
)

__all__ = [
    "ANALYSIS_TEMPLATE",
    "QUESTION_TEMPLATE",
    "STREAM_TEMPLATE",
    "SYSTEM_TEMPLATE",
    "render_system_prompt",
    "render_template",
]
