"""Pydantic models for code issues and the records built around them.

An :class:`Issue` has the same shape whether it was synthesised by the local
heuristic scanner or parsed from an LLM payload, so consumers never need to
know which path produced it. Field names are snake_case in Python and
camelCase on the wire (``lineNumber``, ``originalCode``...).
"""

from __future__ import annotations

from typing import Any, List, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from .enums import EventType, IssueCategory, Severity


class Issue(BaseModel):
    """A single finding: location, description, optional fix and classification.

    Contract:
    - id: unique within one scan or stream (non-empty string; numbers are
      coerced to strings because models sometimes emit ``"id": 1``)
    - line_number: 1-indexed line the issue refers to
    - description: non-empty explanation; the LLM prompt calls this
      ``bugDescription`` so that key is accepted on input
    - original_code / suggested_code: may be empty for heuristic findings
    - severity: always present
    - category: optional; unrecognised values are dropped to ``None``
    """

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    id: str
    line_number: int = Field(alias="lineNumber", ge=1)
    description: str = Field(
        validation_alias=AliasChoices("description", "bugDescription", "issue"),
        serialization_alias="description",
    )
    original_code: str = Field(alias="originalCode")
    suggested_code: str = Field(alias="suggestedCode")
    severity: Severity
    category: IssueCategory | None = None

    @field_validator("id", mode="before")
    def _coerce_id(cls, value: object) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("description", mode="before")
    def _strip_description(cls, value: object) -> str:
        return str(value or "").strip()

    @field_validator("original_code", "suggested_code", mode="before")
    def _code_or_empty(cls, value: object) -> str:
        # Code is kept verbatim; indentation matters when it is patched in.
        if value is None:
            return ""
        return str(value)

    @field_validator("severity", mode="before")
    def _normalise_severity(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("category", mode="before")
    def _normalise_category(cls, value: object) -> IssueCategory | None:
        if value is None or value == "":
            return None
        if isinstance(value, IssueCategory):
            return value
        cleaned = str(value).strip().lower().replace("_", "-").replace(" ", "-")
        try:
            return IssueCategory(cleaned)
        except ValueError:
            return None

    @model_validator(mode="after")
    def final_checks(self) -> "Issue":
        if not self.id:
            raise ValueError("id must not be empty")
        if not self.description:
            raise ValueError("description must not be empty")
        return self

    def to_wire(self) -> dict[str, Any]:
        """Return the camelCase JSON-compatible representation."""
        return self.model_dump(mode="json", by_alias=True)


class AnalysisResult(BaseModel):
    """Result of a whole-document (non-streaming) LLM analysis."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    issues: List[Issue] = Field(
        default_factory=list,
        validation_alias=AliasChoices("bugs", "issues"),
        serialization_alias="bugs",
    )
    summary: str = ""

    @field_validator("summary", mode="before")
    def _strip_summary(cls, value: object) -> str:
        return str(value or "").strip()


class StreamEvent(BaseModel):
    """One record emitted while decoding a streamed analysis.

    ``content`` is an :class:`Issue` for ``issue`` events and plain text for
    ``summary`` and ``partial`` events.
    """

    model_config = ConfigDict(frozen=True)

    type: EventType
    content: Union[Issue, str]

    @model_validator(mode="after")
    def _content_matches_type(self) -> "StreamEvent":
        is_issue = isinstance(self.content, Issue)
        if self.type is EventType.ISSUE and not is_issue:
            raise ValueError("issue events must carry an Issue")
        if self.type is not EventType.ISSUE and is_issue:
            raise ValueError(f"{self.type.value} events must carry text")
        return self

    @classmethod
    def issue(cls, issue: Issue) -> "StreamEvent":
        return cls(type=EventType.ISSUE, content=issue)

    @classmethod
    def summary(cls, text: str) -> "StreamEvent":
        return cls(type=EventType.SUMMARY, content=text)

    @classmethod
    def partial(cls, text: str) -> "StreamEvent":
        return cls(type=EventType.PARTIAL, content=text)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
