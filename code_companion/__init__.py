"""Heuristic and LLM-assisted code review companion."""

from __future__ import annotations

__version__ = "0.1.0"
