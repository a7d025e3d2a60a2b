"""Facade over the local scanner and the LLM-backed analysis flows."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from pydantic import ValidationError

from code_companion.analysis import detect_language, extract_snippet, find_basic_issues
from code_companion.config import CompanionConfig
from code_companion.llm.provider import LLMParseError, LLMProviderConfigurationError
from code_companion.llm.service import LLMService
from code_companion.models import AnalysisResult, Issue, StreamEvent
from code_companion.prompt import (
    ANALYSIS_TEMPLATE,
    QUESTION_TEMPLATE,
    STREAM_TEMPLATE,
    render_template,
)
from code_companion.streaming import decode_stream

logger = logging.getLogger(__name__)


class CodeAnalyzer:
    """Entry point used by the CLI and by any outer transport layer.

    The LLM service is injected; without one only :meth:`scan` and
    :meth:`snippet` are usable.
    """

    def __init__(
        self,
        llm_service: LLMService | None = None,
        config: CompanionConfig | None = None,
    ) -> None:
        self.llm_service = llm_service
        self.config = config or CompanionConfig()

    def _require_service(self) -> LLMService:
        if self.llm_service is None:
            raise LLMProviderConfigurationError(
                "This operation needs an LLM service but none was configured."
            )
        return self.llm_service

    @staticmethod
    def resolve_language(code: str, language: str | None, filename: str) -> str:
        return (language or "").strip().lower() or detect_language(filename, code)

    def scan(self, code: str, language: str | None = None, filename: str = "") -> list[Issue]:
        """Run the local heuristic scanner."""
        return find_basic_issues(
            code,
            self.resolve_language(code, language, filename),
            default_severity=self.config.default_severity,
        )

    def snippet(self, code: str, issue: Issue) -> str:
        """Return the display context for ``issue``."""
        return extract_snippet(code, issue.line_number, self.config.snippet_context_lines)

    def _analysis_context(
        self, code: str, language: str | None, filename: str, additional_context: str
    ) -> dict[str, Any]:
        return {
            "language": self.resolve_language(code, language, filename),
            "code": code,
            "additional_context": additional_context.strip(),
        }

    def analyze(
        self,
        code: str,
        language: str | None = None,
        filename: str = "",
        additional_context: str = "",
    ) -> AnalysisResult:
        """Ask the LLM for a complete analysis in one response.

        Issues that fail validation are dropped with a warning; a response
        that is not a JSON object at all raises :class:`LLMParseError`.
        """
        service = self._require_service()
        prompt = render_template(
            ANALYSIS_TEMPLATE,
            self._analysis_context(code, language, filename, additional_context),
        )
        data = service.generate([prompt], filter_json=True)
        if not isinstance(data, dict):
            raise LLMParseError(
                f"Expected a JSON object with 'bugs' and 'summary', got {type(data).__name__}",
                response_text=str(data),
                prompts=[prompt],
            )

        raw_issues = data.get("bugs", data.get("issues")) or []
        if not isinstance(raw_issues, list):
            raw_issues = []
        issues: list[Issue] = []
        for index, raw in enumerate(raw_issues):
            try:
                issues.append(Issue.model_validate(raw))
            except ValidationError as exc:
                logger.warning("Dropping invalid issue #%d from analysis: %s", index, exc)

        return AnalysisResult(issues=issues, summary=data.get("summary", ""))

    async def stream_analysis(
        self,
        code: str,
        language: str | None = None,
        filename: str = "",
        additional_context: str = "",
    ) -> AsyncIterator[StreamEvent]:
        """Stream issues as the model produces them, then the summary."""
        service = self._require_service()
        prompt = render_template(
            STREAM_TEMPLATE,
            self._analysis_context(code, language, filename, additional_context),
        )
        async for event in decode_stream(service.generate_stream([prompt])):
            yield event

    @staticmethod
    def _question_prompt(question: str, code_context: str, language: str) -> str:
        if not question.strip():
            raise ValueError("question must not be empty")
        return render_template(
            QUESTION_TEMPLATE,
            {
                "question": question.strip(),
                "code_context": code_context,
                "language": language,
            },
        )

    def ask_question(self, question: str, code_context: str = "", language: str = "") -> str:
        """Answer a free-form question, optionally about a piece of code."""
        prompt = self._question_prompt(question, code_context, language)
        service = self._require_service()
        return str(service.generate([prompt])).strip()

    async def stream_answer(
        self, question: str, code_context: str = "", language: str = ""
    ) -> AsyncIterator[str]:
        """Yield the answer to a question as text fragments arrive."""
        prompt = self._question_prompt(question, code_context, language)
        service = self._require_service()
        async for fragment in service.generate_stream([prompt]):
            if fragment:
                yield fragment
