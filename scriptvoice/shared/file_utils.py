"""
File utilities: directory setup, output naming and owned temporary artifacts.
"""

from __future__ import annotations

import re
import uuid
from pathlib import Path
from types import TracebackType

_UNSAFE_TITLE_CHARS = re.compile(r"[^a-zA-Z0-9\u3040-\u309F\u30A0-\u30FF\u4E00-\u9FAF\s]")
_WHITESPACE = re.compile(r"\s+")


def ensure_directory(path: str | Path) -> None:
    """Ensure directory exists, create if not."""
    Path(path).mkdir(parents=True, exist_ok=True)


def sanitize_filename(title: str, max_length: int = 50) -> str:
    """Reduce a section title to letters, digits, kana/kanji and underscores."""
    cleaned = _UNSAFE_TITLE_CHARS.sub("", title)
    cleaned = _WHITESPACE.sub("_", cleaned.strip())
    return cleaned[:max_length]


def section_filename(index: int, title: str) -> str:
    """Output file name for the section at zero-based ``index``."""
    safe_title = sanitize_filename(title)
    suffix = f"_{safe_title}" if safe_title else ""
    return f"section_{index + 1:02d}{suffix}.mp3"


def discard(path: Path) -> None:
    """Delete a file if present."""
    path.unlink(missing_ok=True)


class AudioArtifact:
    """A uniquely named temporary file owned by one pipeline stage.

    ``acquire`` reserves a name; ``release`` deletes the file. Used as a
    context manager the file is released on exit, on success and on error,
    unless ownership was handed on with ``detach``.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._detached = False

    @classmethod
    def acquire(cls, directory: str | Path, prefix: str, suffix: str) -> "AudioArtifact":
        ensure_directory(directory)
        name = f"{prefix}_{uuid.uuid4().hex[:8]}{suffix}"
        return cls(Path(directory) / name)

    @property
    def detached(self) -> bool:
        return self._detached

    def release(self) -> None:
        if not self._detached:
            discard(self.path)

    def detach(self) -> Path:
        """Hand ownership of the file to the caller; ``release`` becomes a no-op."""
        self._detached = True
        return self.path

    def __enter__(self) -> "AudioArtifact":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"AudioArtifact({str(self.path)!r})"
