"""Rule tables for the heuristic scanner.

Every rule is a frozen :class:`LineRule` and every table is a tuple declared
at import time. Rules are grouped into :class:`RuleGroup` objects; the scanner
evaluates groups in the order of :data:`RULE_GROUPS` for each line.

A group either stops at its first matching rule (``first_match=True``) or
lets every rule fire independently. Groups with ``languages`` set only run
when the scanner's language tag is one of them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from code_companion.models import IssueCategory


@dataclass(frozen=True)
class LineRule:
    """A single per-line pattern check.

    Attributes:
        pattern: must match somewhere in the line
        category: category given to the resulting issue
        message: issue description
        also: optional second pattern that must also match
        unless: optional pattern that suppresses the rule when it matches
    """

    pattern: re.Pattern[str]
    category: IssueCategory
    message: str
    also: re.Pattern[str] | None = None
    unless: re.Pattern[str] | None = None

    def matches(self, line: str) -> bool:
        if not self.pattern.search(line):
            return False
        if self.also is not None and not self.also.search(line):
            return False
        if self.unless is not None and self.unless.search(line):
            return False
        return True


@dataclass(frozen=True)
class RuleGroup:
    name: str
    rules: tuple[LineRule, ...]
    first_match: bool = False
    languages: frozenset[str] | None = None

    def applies_to(self, language: str) -> bool:
        return self.languages is None or language in self.languages


def _secret(pattern: str, name: str, flags: int = re.IGNORECASE) -> LineRule:
    return LineRule(
        pattern=re.compile(pattern, flags),
        category=IssueCategory.SECURITY,
        message=(
            f"Potential hardcoded {name} detected. Storing sensitive "
            "information in code is a security risk."
        ),
    )


def _ethics(pattern: str, message: str) -> LineRule:
    return LineRule(
        pattern=re.compile(pattern, re.IGNORECASE),
        category=IssueCategory.ETHICS,
        message=message,
    )


MARKER_RULES: tuple[LineRule, ...] = (
    LineRule(
        pattern=re.compile(r"TODO"),
        category=IssueCategory.CODE_QUALITY,
        message='Found "TODO" comment that needs to be addressed',
    ),
    LineRule(
        pattern=re.compile(r"FIXME"),
        category=IssueCategory.CODE_QUALITY,
        message='Found "FIXME" comment that needs to be addressed',
    ),
)

# Checked in order; only the first hit is reported.
SECRET_KEYWORD_RULES: tuple[LineRule, ...] = (
    _secret(r"api[_-]?key", "API Key"),
    _secret(r"auth[_-]?token", "Auth Token"),
    _secret(r"password", "Password"),
    _secret(r"secret", "Secret"),
    _secret(r"access[_-]?key", "Access Key"),
    _secret(r"private[_-]?key", "Private Key"),
    _secret(r"BEGIN (RSA|DSA|EC|OPENSSH) PRIVATE KEY", "SSH/PGP Private Key", 0),
    _secret(r"-----BEGIN CERTIFICATE-----", "Certificate", 0),
    _secret(r"jwt[_-]?token", "JWT"),
    _secret(r"bearer", "Bearer Token"),
)

SECRET_LITERAL_RULES: tuple[LineRule, ...] = (
    LineRule(
        pattern=re.compile(r"""(["'])(?:[A-Za-z0-9_=-]{20,})\1"""),
        category=IssueCategory.SECURITY,
        message=(
            "Potential hardcoded API key or secret detected. Consider using "
            "environment variables or a secrets manager."
        ),
    ),
)

ETHICS_RULES: tuple[LineRule, ...] = (
    _ethics(r"gender", "Code references gender which might need ethical review for bias"),
    _ethics(r"race", "Code references race which might need ethical review for bias"),
    _ethics(
        r"ethnicity",
        "Code references ethnicity which might need ethical review for bias",
    ),
    _ethics(
        r"nationality",
        "Code references nationality which might need ethical review for bias",
    ),
    _ethics(
        r"age discrimination",
        "Code might involve age-related logic that should be reviewed for discrimination",
    ),
    _ethics(r"tracking", "Code involves tracking which might have privacy implications"),
    _ethics(r"surveillance", "Code involves surveillance which raises ethical concerns"),
    _ethics(
        r"facial recognition",
        "Facial recognition technology raises privacy and bias concerns",
    ),
)

SECURITY_RULES: tuple[LineRule, ...] = (
    LineRule(
        pattern=re.compile(r"TODO.*security", re.IGNORECASE),
        category=IssueCategory.SECURITY,
        message="Security-related TODO comment found",
    ),
    LineRule(
        pattern=re.compile(r"FIXME.*security", re.IGNORECASE),
        category=IssueCategory.SECURITY,
        message="Security-related FIXME comment found",
    ),
    LineRule(
        pattern=re.compile(r"(?://|#).*hack", re.IGNORECASE),
        category=IssueCategory.SECURITY,
        message="Comment indicates a potential security hack or workaround",
    ),
    LineRule(
        pattern=re.compile(r"SELECT|INSERT|UPDATE|DELETE"),
        also=re.compile(r"\+"),
        unless=re.compile(r"prepared"),
        category=IssueCategory.SECURITY,
        message=(
            "Potential SQL injection vulnerability. Use prepared statements "
            "or parameterized queries."
        ),
    ),
)

JAVASCRIPT_RULES: tuple[LineRule, ...] = (
    LineRule(
        pattern=re.compile(r"console\.log"),
        category=IssueCategory.CODE_QUALITY,
        message="Console logging statement should be removed in production code",
    ),
    LineRule(
        # strict operator somewhere, plus a loose one that is not part of it
        pattern=re.compile(r"[=!]=="),
        also=re.compile(r"(?<![=!])[=!]=(?!=)"),
        category=IssueCategory.CODE_QUALITY,
        message="Mixing strict and loose equality operators might lead to confusion",
    ),
    LineRule(
        pattern=re.compile(r"eval\(|new Function\("),
        category=IssueCategory.SECURITY,
        message=(
            "Using eval() or new Function() can lead to code injection vulnerabilities"
        ),
    ),
    LineRule(
        pattern=re.compile(r"innerHTML|outerHTML"),
        category=IssueCategory.SECURITY,
        message="Using innerHTML or outerHTML can lead to XSS vulnerabilities",
    ),
)

PYTHON_RULES: tuple[LineRule, ...] = (
    LineRule(
        pattern=re.compile(r"print\("),
        unless=re.compile(r"#"),
        category=IssueCategory.CODE_QUALITY,
        message="Print statement should be removed in production code",
    ),
    LineRule(
        pattern=re.compile(r"except:"),
        unless=re.compile(r"except \w+:"),
        category=IssueCategory.CODE_QUALITY,
        message=(
            "Bare except clause will catch all exceptions including KeyboardInterrupt"
        ),
    ),
    LineRule(
        pattern=re.compile(r"pickle\.loads?"),
        category=IssueCategory.SECURITY,
        message=(
            "Using pickle to deserialize data from untrusted sources is a security risk"
        ),
    ),
    LineRule(
        pattern=re.compile(r"exec\(|eval\("),
        category=IssueCategory.SECURITY,
        message="Using exec() or eval() can lead to code injection vulnerabilities",
    ),
    LineRule(
        pattern=re.compile(r"subprocess\.call"),
        also=re.compile(r"shell=True"),
        category=IssueCategory.SECURITY,
        message=(
            "Using shell=True with subprocess functions can lead to command "
            "injection vulnerabilities"
        ),
    ),
)

RULE_GROUPS: tuple[RuleGroup, ...] = (
    RuleGroup("markers", MARKER_RULES, first_match=True),
    RuleGroup("secret-keywords", SECRET_KEYWORD_RULES, first_match=True),
    RuleGroup("secret-literals", SECRET_LITERAL_RULES),
    RuleGroup("ethics", ETHICS_RULES, first_match=True),
    RuleGroup("security", SECURITY_RULES),
    RuleGroup(
        "javascript",
        JAVASCRIPT_RULES,
        languages=frozenset({"javascript", "typescript"}),
    ),
    RuleGroup("python", PYTHON_RULES, languages=frozenset({"python"})),
)
