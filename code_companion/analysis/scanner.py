"""Single-pass heuristic scanner for common code issues.

The scanner is a pure function of ``(code, language)``: it walks the lines in
order and runs the rule groups from :mod:`code_companion.analysis.rules`
against each one. It never raises and keeps no state between calls.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Sequence

from code_companion.models import Issue, Severity

from .line_model import split_lines
from .rules import RULE_GROUPS, LineRule, RuleGroup

if TYPE_CHECKING:
    from code_companion.sources import SourceFile

logger = logging.getLogger(__name__)

DEFAULT_SEVERITY = Severity.WARNING


def matching_rules(
    line: str,
    language: str,
    groups: Sequence[RuleGroup] = RULE_GROUPS,
) -> list[LineRule]:
    """Return the rules that fire for ``line``, in group order."""
    fired: list[LineRule] = []
    for group in groups:
        if not group.applies_to(language):
            continue
        for rule in group.rules:
            if rule.matches(line):
                fired.append(rule)
                if group.first_match:
                    break
    return fired


def find_basic_issues(
    code: str,
    language: str,
    *,
    default_severity: Severity = DEFAULT_SEVERITY,
) -> list[Issue]:
    """Scan ``code`` line by line and return every heuristic finding.

    Issues are ordered by line, then by rule group. A line can produce several
    issues. Unknown languages only get the language-agnostic groups.

    Example:
        >>> issues = find_basic_issues("x = 1  # TODO tidy", "python")
        >>> [(i.line_number, i.category.value) for i in issues]
        [(1, 'code-quality')]
    """
    issues: list[Issue] = []
    language = (language or "").strip().lower()

    for index, line in enumerate(split_lines(code)):
        for rule in matching_rules(line, language):
            issues.append(
                Issue(
                    id=f"basic-{len(issues) + 1}",
                    line_number=index + 1,
                    description=rule.message,
                    original_code=line,
                    suggested_code="",
                    severity=default_severity,
                    category=rule.category,
                )
            )

    return issues


def scan_sources(
    sources: Iterable[SourceFile],
    *,
    default_severity: Severity = DEFAULT_SEVERITY,
) -> dict[str, list[Issue]]:
    """Run :func:`find_basic_issues` over several files, keyed by path."""
    results: dict[str, list[Issue]] = {}
    for source in sources:
        issues = find_basic_issues(
            source.content, source.language, default_severity=default_severity
        )
        logger.debug(
            "Scanned %s (%s): %d issue(s)", source.path, source.language, len(issues)
        )
        results[source.path] = issues
    return results
