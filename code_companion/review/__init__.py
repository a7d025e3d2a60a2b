"""Analysis facade and the review workflow built on top of it."""

from __future__ import annotations

from .analyzer import CodeAnalyzer
from .session import ReviewAction, ReviewDecision, ReviewSession

__all__ = ["CodeAnalyzer", "ReviewAction", "ReviewDecision", "ReviewSession"]
