"""Render the prompt templates in ``promptFiles`` using pystache.

Templates pull in shared fragments as partials (``{{> issue_fields}}``); the
partials are loaded by name from the same directory. Code and free text are
inserted with triple mustaches so they are never HTML-escaped.

Usage:
    python -m code_companion.prompt.render_prompt [template_filename] [context.json]
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pystache

from code_companion.streaming.decoder import ANALYSIS_SENTINEL, ISSUE_SENTINEL

PROMPTS_DIR = Path(__file__).parent / "promptFiles"

SYSTEM_TEMPLATE = "system_code_reviewer.md"
ANALYSIS_TEMPLATE = "code_analysis.md"
STREAM_TEMPLATE = "stream_analysis.md"
QUESTION_TEMPLATE = "code_question.md"

# Partials each template needs; anything unlisted gets none
TEMPLATE_PARTIALS: dict[str, list[str]] = {
    ANALYSIS_TEMPLATE: ["review_focus", "issue_fields"],
    STREAM_TEMPLATE: ["issue_fields"],
}


def _read_prompt(name: str) -> str:
    p = PROMPTS_DIR / name
    if not p.exists():
        raise FileNotFoundError(f"Prompt file not found: {p}")
    return p.read_text(encoding="utf-8")


def _strip_code_fences(s: str) -> str:
    """Strip a single leading and trailing code-fence block if present."""
    lines = s.splitlines()
    if not lines:
        return s
    if lines[0].lstrip().startswith("```"):
        lines = lines[1:]
    if lines and lines[-1].lstrip().startswith("```"):
        lines = lines[:-1]
    return "\n".join(lines).strip()


def render_template(template_name: str, context: dict | None = None) -> str:
    partials = {
        name: _strip_code_fences(_read_prompt(f"{name}.md"))
        for name in TEMPLATE_PARTIALS.get(template_name, [])
    }
    # The stream contract must use the decoder's sentinels verbatim
    values = {
        "issue_sentinel": ISSUE_SENTINEL,
        "analysis_sentinel": ANALYSIS_SENTINEL,
        **(context or {}),
    }
    renderer = pystache.Renderer(partials=partials, missing_tags="ignore")
    return renderer.render(_read_prompt(template_name), values).strip()


def render_system_prompt() -> str:
    return render_template(SYSTEM_TEMPLATE)


def _load_context(path: str) -> dict:
    return json.loads(Path(path).read_text(encoding="utf-8"))


if __name__ == "__main__":
    tpl = sys.argv[1] if len(sys.argv) > 1 else ANALYSIS_TEMPLATE
    ctx = None
    if len(sys.argv) > 2:
        ctx = _load_context(sys.argv[2])
    print(render_template(tpl, ctx))
