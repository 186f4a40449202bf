"""ffmpeg-backed implementation of the audio transform interface."""

from __future__ import annotations

import asyncio
from pathlib import Path

from scriptvoice.shared.logging_utils import setup_logging

from .transform import AudioToolError, AudioTransform

logger = setup_logging("ffmpeg")

_STDERR_TAIL_CHARS = 2000


class FFmpegTransform(AudioTransform):
    """Run ffmpeg as a subprocess for every audio operation."""

    def __init__(self, ffmpeg_path: str = "ffmpeg") -> None:
        self.ffmpeg_path = ffmpeg_path

    async def decode_pcm(
        self,
        pcm_path: Path,
        destination: Path,
        sample_rate: int,
        channels: int,
        bitrate: str,
    ) -> None:
        await self._run(
            "-f", "s16le",
            "-ar", str(sample_rate),
            "-ac", str(channels),
            "-i", str(pcm_path),
            "-codec:a", "libmp3lame",
            "-b:a", bitrate,
            "-y", str(destination),
        )

    async def apply_filters(
        self,
        source: Path,
        filter_graph: str,
        destination: Path,
        sample_rate: int,
        channels: int,
        bitrate: str,
    ) -> None:
        await self._run(
            "-i", str(source),
            "-af", filter_graph,
            "-ar", str(sample_rate),
            "-ac", str(channels),
            "-b:a", bitrate,
            "-y", str(destination),
        )

    async def concatenate(self, manifest: Path, destination: Path) -> None:
        await self._run(
            "-f", "concat",
            "-safe", "0",
            "-i", str(manifest),
            "-c", "copy",
            "-y", str(destination),
        )

    async def audio_statistics(self, source: Path) -> str:
        return await self._run(
            "-i", str(source),
            "-af", "astats=metadata=1:reset=1",
            "-f", "null", "-",
        )

    async def _run(self, *args: str) -> str:
        """Run ffmpeg and return its diagnostic output (stderr)."""
        command = [self.ffmpeg_path, "-hide_banner", *args]
        logger.debug(f"Running {' '.join(command)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise AudioToolError(f"ffmpeg executable not found: {self.ffmpeg_path}") from exc
        except OSError as exc:
            raise AudioToolError(f"ffmpeg could not be started ({self.ffmpeg_path}): {exc}") from exc

        _, stderr_bytes = await process.communicate()
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        if process.returncode != 0:
            tail = stderr[-_STDERR_TAIL_CHARS:]
            logger.error(f"ffmpeg exited with {process.returncode}: {tail}")
            raise AudioToolError(
                f"ffmpeg exited with status {process.returncode}",
                returncode=process.returncode,
                stderr=tail,
            )
        return stderr
