"""Best-effort language detection and text-file filtering.

Detection looks at the file extension first and falls back to a few content
heuristics. The result is only a tag for the scanner and the prompts; an
unknown extension with no recognisable content is reported as
``javascript``.
"""

from __future__ import annotations

from pathlib import PurePosixPath

DEFAULT_LANGUAGE = "javascript"

EXTENSION_LANGUAGES: dict[str, str] = {
    "js": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "java": "java",
    "html": "html",
    "css": "css",
    "json": "json",
    "md": "markdown",
    "rb": "ruby",
    "php": "php",
    "go": "go",
    "c": "c",
    "cpp": "cpp",
    "cc": "cpp",
    "cxx": "cpp",
    "cs": "csharp",
    "sh": "bash",
}

TEXT_EXTENSIONS = frozenset(
    {
        ".js", ".ts", ".jsx", ".tsx", ".py", ".java", ".html", ".css",
        ".json", ".md", ".txt", ".xml", ".csv", ".rb", ".php", ".go",
        ".c", ".cpp", ".h", ".cs", ".sh", ".yml", ".yaml", ".toml",
    }
)


def _extension(filename: str) -> str:
    # "Makefile" has no extension; ".env" is treated as extension "env"
    name = PurePosixPath(filename.replace("\\", "/")).name
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def _detect_from_content(content: str) -> str | None:
    if "def " in content and ":" in content and (
        "import " in content or "from " in content
    ):
        return "python"
    if "function" in content and (
        "const " in content or "let " in content or "var " in content
    ):
        return "javascript"
    if "class" in content and "public" in content and ";" in content:
        return "java"
    if "<html" in content or "<!DOCTYPE html" in content:
        return "html"
    if "interface " in content and "export " in content and ":" in content:
        return "typescript"
    return None


def detect_language(filename: str = "", content: str = "") -> str:
    """Return a language tag such as ``"python"`` for a file.

    Args:
        filename: File name or path; may be empty
        content: File content used when the extension is not conclusive

    Returns:
        A lower-case language tag; ``javascript`` when nothing matches
    """
    if filename:
        language = EXTENSION_LANGUAGES.get(_extension(filename))
        if language:
            return language

    if content:
        language = _detect_from_content(content)
        if language:
            return language

    return DEFAULT_LANGUAGE


def is_text_file(filename: str) -> bool:
    extension = _extension(filename)
    return bool(extension) and f".{extension}" in TEXT_EXTENSIONS
