"""Load ``(path, content)`` pairs for analysis from files, folders and zip archives."""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterator

from code_companion.analysis.language import detect_language, is_text_file

logger = logging.getLogger(__name__)

SKIPPED_DIRECTORIES = frozenset(
    {".git", ".hg", ".svn", "node_modules", "__pycache__", ".venv", "venv", "dist", "build"}
)


@dataclass(frozen=True)
class SourceFile:
    """A single source document supplied for analysis.

    Attributes:
        path: Relative path (POSIX separators) used to identify the file
        content: Decoded text content
    """

    path: str
    content: str

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def language(self) -> str:
        return detect_language(self.name, self.content)


def _decode(data: bytes, label: str) -> str | None:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("Skipping %s: not valid UTF-8", label)
        return None


def read_zip_sources(archive: Path) -> list[SourceFile]:
    """Return every text member of a zip archive, in archive order."""
    sources: list[SourceFile] = []
    with zipfile.ZipFile(archive) as bundle:
        for info in bundle.infolist():
            if info.is_dir() or not is_text_file(info.filename):
                continue
            parts = PurePosixPath(info.filename).parts
            if any(part in SKIPPED_DIRECTORIES for part in parts):
                continue
            content = _decode(bundle.read(info), f"{archive}:{info.filename}")
            if content is not None:
                sources.append(SourceFile(path=info.filename, content=content))
    return sources


def iter_directory_sources(root: Path) -> Iterator[SourceFile]:
    """Yield text files under ``root`` in sorted order."""
    for path in sorted(root.rglob("*")):
        relative = path.relative_to(root)
        if any(part in SKIPPED_DIRECTORIES for part in relative.parts):
            continue
        if not path.is_file() or not is_text_file(path.name):
            continue
        content = _decode(path.read_bytes(), str(path))
        if content is not None:
            yield SourceFile(path=relative.as_posix(), content=content)


def load_path(path: Path) -> list[SourceFile]:
    """Load sources from a file, a directory or a ``.zip`` archive.

    Raises:
        FileNotFoundError: If ``path`` does not exist
    """
    if not path.exists():
        raise FileNotFoundError(f"No such file or directory: {path}")
    if path.is_dir():
        return list(iter_directory_sources(path))
    if path.suffix.lower() == ".zip":
        return read_zip_sources(path)
    # An explicitly named file is read even if its extension is unusual.
    content = _decode(path.read_bytes(), str(path))
    if content is None:
        return []
    return [SourceFile(path=path.name, content=content)]
