from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from code_companion.analysis.line_model import DEFAULT_CONTEXT_LINES
from code_companion.models import Severity

logger = logging.getLogger(__name__)

ENV_PREFIX = "CODE_COMPANION"


def _read_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %d", name, raw, default)
        return default
    return max(0, value)


def _read_severity(name: str, default: Severity) -> Severity:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return Severity(raw.strip().lower())
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default.value)
        return default


@dataclass(frozen=True)
class CompanionConfig:
    """Runtime settings shared by the analyzer, the review session and the CLI.

    ``snippet_context_lines`` controls how much surrounding code is shown for
    an issue; ``patch_context_lines`` controls how much is replaced when a fix
    is accepted. They default to the same value but are independent.
    """

    snippet_context_lines: int = DEFAULT_CONTEXT_LINES
    patch_context_lines: int = DEFAULT_CONTEXT_LINES
    default_severity: Severity = Severity.WARNING
    llm_primary: str | None = None
    llm_fallback: tuple[str, ...] = ()

    @classmethod
    def from_env(cls, dotenv_path: str | Path | None = None) -> "CompanionConfig":
        """Build a configuration from the environment (after loading ``.env``)."""
        if dotenv_path is not None:
            load_dotenv(dotenv_path=Path(dotenv_path))
        else:
            load_dotenv()

        fallback = os.environ.get("LLM_FALLBACK", "")
        return cls(
            snippet_context_lines=_read_int(
                f"{ENV_PREFIX}_SNIPPET_CONTEXT", DEFAULT_CONTEXT_LINES
            ),
            patch_context_lines=_read_int(
                f"{ENV_PREFIX}_PATCH_CONTEXT", DEFAULT_CONTEXT_LINES
            ),
            default_severity=_read_severity(
                f"{ENV_PREFIX}_DEFAULT_SEVERITY", Severity.WARNING
            ),
            llm_primary=os.environ.get("LLM_PRIMARY") or None,
            llm_fallback=tuple(
                name.strip().lower() for name in fallback.split(",") if name.strip()
            ),
        )
