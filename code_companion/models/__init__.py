"""Public model exports for the project.

Keep the :mod:`code_companion` namespace clean: tests and other modules should
import ``from code_companion.models import Issue, Severity``.
"""

from __future__ import annotations

from .enums import EventType, IssueCategory, Severity
from .issue import AnalysisResult, Issue, StreamEvent

__all__ = [
    "AnalysisResult",
    "EventType",
    "Issue",
    "IssueCategory",
    "Severity",
    "StreamEvent",
]
