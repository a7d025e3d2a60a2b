"""Enumerations shared by the issue models.

Values are the exact strings used on the wire and in the prompt contract, so
they are safe to serialise directly into JSON.
"""

from __future__ import annotations

from enum import Enum


class Severity(str, Enum):
    """How serious a finding is."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @classmethod
    def all_values(cls) -> list[str]:
        return [m.value for m in cls]


class IssueCategory(str, Enum):
    """Classification attached to an issue by a rule or by the LLM."""

    SECURITY = "security"
    ETHICS = "ethics"
    CODE_QUALITY = "code-quality"
    PERFORMANCE = "performance"
    ACCESSIBILITY = "accessibility"
    PRIVACY = "privacy"
    COMPLIANCE = "compliance"

    @classmethod
    def all_values(cls) -> list[str]:
        return [m.value for m in cls]


class EventType(str, Enum):
    """Kinds of record produced while decoding a streamed analysis.

    Values:
        ISSUE: a complete issue payload
        SUMMARY: the free-form summary after ``ANALYSIS_COMPLETE``
        PARTIAL: leftover text flushed when a stream ends without a sentinel
    """

    ISSUE = "issue"
    SUMMARY = "summary"
    PARTIAL = "partial"
