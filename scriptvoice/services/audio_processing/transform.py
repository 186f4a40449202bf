"""Capability interface for the audio transcoding backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class AudioToolError(Exception):
    """The transcoding backend failed or is unavailable."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class AudioTransform(ABC):
    """Audio operations the pipeline needs from a transcoding backend.

    Implementations may shell out to a tool or use an in-process codec; the
    pipeline only depends on this interface.
    """

    @abstractmethod
    async def decode_pcm(
        self,
        pcm_path: Path,
        destination: Path,
        sample_rate: int,
        channels: int,
        bitrate: str,
    ) -> None:
        """Encode raw signed 16-bit little-endian PCM into a compressed container."""

    @abstractmethod
    async def apply_filters(
        self,
        source: Path,
        filter_graph: str,
        destination: Path,
        sample_rate: int,
        channels: int,
        bitrate: str,
    ) -> None:
        """Re-encode ``source`` through ``filter_graph``."""

    @abstractmethod
    async def concatenate(self, manifest: Path, destination: Path) -> None:
        """Join the files listed in ``manifest`` without re-encoding."""

    @abstractmethod
    async def audio_statistics(self, source: Path) -> str:
        """Return the textual report of an audio-statistics pass over ``source``."""

    @staticmethod
    def write_manifest(sources: list[Path], manifest: Path) -> None:
        """Write a concat manifest (one ``file '<path>'`` line per input)."""
        lines = []
        for source in sources:
            escaped = str(Path(source).resolve()).replace("'", "'\\''")
            lines.append(f"file '{escaped}'")
        manifest.write_text("\n".join(lines) + "\n", encoding="utf-8")

    @staticmethod
    def read_manifest(manifest: Path) -> list[Path]:
        """Inverse of ``write_manifest``."""
        sources: list[Path] = []
        for line in manifest.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line.startswith("file "):
                continue
            quoted = line[len("file "):]
            sources.append(Path(quoted[1:-1].replace("'\\''", "'")))
        return sources
