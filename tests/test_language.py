from __future__ import annotations

import pytest

from code_companion.analysis.language import detect_language, is_text_file


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("app.js", "javascript"),
        ("component.TSX", "typescript"),
        ("src/tool.py", "python"),
        ("Main.java", "java"),
        ("lib\\util.cc", "cpp"),
        ("deploy.sh", "bash"),
    ],
)
def test_detects_language_from_extension(filename: str, expected: str) -> None:
    assert detect_language(filename) == expected


def test_extension_wins_over_content() -> None:
    assert detect_language("script.py", "function f() { const x = 1; }") == "python"


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ("import os\n\ndef main():\n    pass", "python"),
        ("function f() { let x = 1; }", "javascript"),
        ("public class A { int x; }", "java"),
        ("<!DOCTYPE html><html></html>", "html"),
        ("export interface User { name: string }", "typescript"),
    ],
)
def test_detects_language_from_content(content: str, expected: str) -> None:
    assert detect_language("", content) == expected


def test_unknown_input_defaults_to_javascript() -> None:
    assert detect_language() == "javascript"
    assert detect_language("notes.unknown", "plain words") == "javascript"


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("a.py", True),
        ("README.md", True),
        ("config.YAML", True),
        ("image.png", False),
        ("Makefile", False),
        ("archive.zip", False),
    ],
)
def test_is_text_file(filename: str, expected: bool) -> None:
    assert is_text_file(filename) is expected
