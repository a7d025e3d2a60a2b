"""Apply accept / modify / reject decisions to a document under review."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from code_companion.analysis.line_model import (
    DEFAULT_CONTEXT_LINES,
    apply_patch,
    context_window,
    line_count,
)
from code_companion.models import Issue


class ReviewAction(str, Enum):
    ACCEPT = "accept"
    MODIFY = "modify"
    REJECT = "reject"


@dataclass(frozen=True)
class ReviewDecision:
    issue_id: str
    action: ReviewAction
    line_number: int


class ReviewSession:
    """Holds one document and the issues still awaiting a decision.

    Accepting or modifying an issue replaces the context window around its
    line and drops it; rejecting only drops it. Pending issues that sit below
    a replaced window have their line numbers shifted by the change in length
    so later patches still land on the right lines. An issue whose line lies
    outside the current document cannot be accepted or modified and stays
    pending.
    """

    def __init__(
        self,
        document: str,
        issues: Iterable[Issue],
        *,
        patch_context_lines: int = DEFAULT_CONTEXT_LINES,
    ) -> None:
        self._document = document
        self._pending: dict[str, Issue] = {}
        for issue in issues:
            if issue.id in self._pending:
                raise ValueError(f"Duplicate issue id {issue.id!r}")
            self._pending[issue.id] = issue
        self.patch_context_lines = patch_context_lines
        self.history: list[ReviewDecision] = []

    @property
    def document(self) -> str:
        return self._document

    @property
    def pending(self) -> list[Issue]:
        return list(self._pending.values())

    def get(self, issue_id: str) -> Issue:
        try:
            return self._pending[issue_id]
        except KeyError:
            raise KeyError(f"No pending issue with id {issue_id!r}") from None

    def accept(self, issue_id: str) -> str:
        """Apply the issue's suggested code and return the new document."""
        issue = self.get(issue_id)
        if not issue.suggested_code:
            raise ValueError(f"Issue {issue_id!r} has no suggested fix to accept")
        return self._replace(issue, issue.suggested_code, ReviewAction.ACCEPT)

    def modify(self, issue_id: str, replacement: str) -> str:
        """Apply a user-edited replacement instead of the suggestion."""
        issue = self.get(issue_id)
        return self._replace(issue, replacement, ReviewAction.MODIFY)

    def reject(self, issue_id: str) -> None:
        issue = self.get(issue_id)
        del self._pending[issue_id]
        self.history.append(ReviewDecision(issue.id, ReviewAction.REJECT, issue.line_number))

    def _replace(self, issue: Issue, replacement: str, action: ReviewAction) -> str:
        window = context_window(
            line_count(self._document), issue.line_number, self.patch_context_lines
        )
        if window is None:
            # apply_patch would silently leave the document as it is
            raise ValueError(
                f"Issue {issue.id!r} line {issue.line_number} is outside the document"
            )
        self._document = apply_patch(
            self._document, issue.line_number, replacement, self.patch_context_lines
        )
        del self._pending[issue.id]
        self.history.append(ReviewDecision(issue.id, action, issue.line_number))

        start, end = window
        self._shift_pending(
            after_line=end + 1, delta=line_count(replacement) - (end - start + 1)
        )
        return self._document

    def _shift_pending(self, after_line: int, delta: int) -> None:
        if delta == 0:
            return
        for issue_id, issue in list(self._pending.items()):
            if issue.line_number > after_line:
                self._pending[issue_id] = issue.model_copy(
                    update={"line_number": issue.line_number + delta}
                )
