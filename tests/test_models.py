from __future__ import annotations

import pytest
from pydantic import ValidationError

from code_companion.models import (
    AnalysisResult,
    EventType,
    Issue,
    IssueCategory,
    Severity,
    StreamEvent,
)


def _raw(**overrides: object) -> dict[str, object]:
    data: dict[str, object] = {
        "id": "a1",
        "lineNumber": 4,
        "description": "  Unused variable  ",
        "originalCode": "    let x = 1;",
        "suggestedCode": "",
        "severity": "INFO",
    }
    data.update(overrides)
    return data


def test_enum_values() -> None:
    assert set(Severity.all_values()) == {"error", "warning", "info"}
    assert IssueCategory.CODE_QUALITY.value == "code-quality"
    assert len(IssueCategory.all_values()) == 7
    assert EventType.PARTIAL.value == "partial"


def test_issue_normalises_llm_payload() -> None:
    issue = Issue.model_validate(_raw(category="Code Quality"))

    assert issue.description == "Unused variable"
    assert issue.original_code == "    let x = 1;"
    assert issue.severity is Severity.INFO
    assert issue.category is IssueCategory.CODE_QUALITY


def test_issue_accepts_bug_description_alias() -> None:
    data = _raw()
    del data["description"]
    data["bugDescription"] = "From the prompt contract"

    assert Issue.model_validate(data).description == "From the prompt contract"


@pytest.mark.parametrize(
    "overrides",
    [
        {"lineNumber": 0},
        {"description": "   "},
        {"id": ""},
        {"severity": "fatal"},
    ],
)
def test_issue_rejects_invalid_payloads(overrides: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        Issue.model_validate(_raw(**overrides))


def test_issue_requires_code_fields() -> None:
    data = _raw()
    del data["originalCode"]

    with pytest.raises(ValidationError):
        Issue.model_validate(data)


def test_issue_is_frozen_and_serialises_camel_case() -> None:
    issue = Issue.model_validate(_raw())

    with pytest.raises(ValidationError):
        issue.line_number = 9  # type: ignore[misc]

    assert issue.to_wire() == {
        "id": "a1",
        "lineNumber": 4,
        "description": "Unused variable",
        "originalCode": "    let x = 1;",
        "suggestedCode": "",
        "severity": "info",
        "category": None,
    }


def test_analysis_result_reads_bugs_key() -> None:
    result = AnalysisResult.model_validate({"bugs": [_raw()], "summary": " Fine "})

    assert len(result.issues) == 1
    assert result.summary == "Fine"
    assert result.model_dump(by_alias=True)["bugs"][0]["id"] == "a1"


def test_stream_event_content_must_match_type() -> None:
    issue = Issue.model_validate(_raw())

    assert StreamEvent.issue(issue).content == issue
    with pytest.raises(ValidationError):
        StreamEvent(type=EventType.ISSUE, content="text")
    with pytest.raises(ValidationError):
        StreamEvent(type=EventType.SUMMARY, content=issue)
