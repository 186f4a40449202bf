"""Audio post-processing: decode, filter, normalize and concatenate narration chunks."""

from __future__ import annotations

import base64
import binascii
import shutil
from pathlib import Path

from scriptvoice.shared.config import NarrationSettings, config as service_config
from scriptvoice.shared.enums import DenoiseLevel, NoiseType
from scriptvoice.shared.exceptions import ConcatenationError, DecodeError, FilterError
from scriptvoice.shared.file_utils import AudioArtifact, discard, ensure_directory
from scriptvoice.shared.logging_utils import setup_logging
from scriptvoice.shared.models import DenoiseConfig, FilterStage, NoiseProfile

from .analyzer import NoiseAnalyzer
from .ffmpeg import FFmpegTransform
from .filters import NORMALIZATION_CHAIN, compose_denoise_chain, render_filter_graph
from .transform import AudioToolError, AudioTransform

DENOISE_SAMPLE_RATE = 44100
PCM_SAMPLE_WIDTH = 2


class AudioProcessor:
    """Audio operations with exclusive ownership of their intermediate files.

    Every operation removes the temporary files it created, and any partial
    output it wrote, before returning or raising.
    """

    def __init__(
        self,
        transform: AudioTransform | None = None,
        sample_rate: int = 24000,
        channels: int = 1,
        bitrate: str = "128k",
    ) -> None:
        self.logger = setup_logging("audio-processor")
        self.transform = transform or FFmpegTransform(service_config.get("ffmpeg_path", "ffmpeg"))
        self.sample_rate = sample_rate
        self.channels = channels
        self.bitrate = bitrate
        self.analyzer = NoiseAnalyzer(self.transform)

    @classmethod
    def from_settings(
        cls, settings: NarrationSettings, transform: AudioTransform | None = None
    ) -> "AudioProcessor":
        return cls(
            transform or FFmpegTransform(settings.ffmpeg_path),
            sample_rate=settings.sample_rate,
            channels=settings.channels,
            bitrate=settings.bitrate,
        )

    async def decode(self, payload: bytes | str, destination: Path) -> Path:
        """
        Encode a raw PCM payload into an MP3 file.

        Args:
            payload: 16-bit little-endian PCM, either raw bytes or base64 text
            destination: Output file

        Raises:
            DecodeError: malformed payload or transcoding failure
        """
        pcm = self._pcm_bytes(payload)
        destination = Path(destination)
        ensure_directory(destination.parent)

        with AudioArtifact.acquire(destination.parent, f"{destination.stem}_pcm", ".pcm") as pcm_file:
            pcm_file.path.write_bytes(pcm)
            try:
                await self.transform.decode_pcm(
                    pcm_file.path,
                    destination,
                    sample_rate=self.sample_rate,
                    channels=self.channels,
                    bitrate=self.bitrate,
                )
            except AudioToolError as exc:
                discard(destination)
                raise DecodeError(f"PCM to MP3 conversion failed: {exc}", diagnostics=exc.stderr) from exc

        return destination

    async def apply_filters(
        self,
        source: Path,
        chain: list[FilterStage] | tuple[FilterStage, ...],
        destination: Path,
        sample_rate: int | None = None,
        operation: str = "filter",
    ) -> Path:
        """
        Run ``source`` through a filter chain into ``destination``.

        An empty chain copies the file byte for byte.

        Raises:
            FilterError: missing source or transcoding failure
        """
        source = Path(source)
        destination = Path(destination)
        if not source.exists():
            raise FilterError(f"Input file not found: {source}", operation=operation)
        ensure_directory(destination.parent)

        if not chain:
            shutil.copyfile(source, destination)
            return destination

        try:
            await self.transform.apply_filters(
                source,
                render_filter_graph(chain),
                destination,
                sample_rate=sample_rate or self.sample_rate,
                channels=self.channels,
                bitrate=self.bitrate,
            )
        except AudioToolError as exc:
            discard(destination)
            raise FilterError(
                f"Filter chain failed on {source.name}: {exc}",
                diagnostics=exc.stderr,
                operation=operation,
            ) from exc
        return destination

    async def normalize(self, source: Path, destination: Path) -> Path:
        """Apply the fixed speed/loudness/band normalization chain."""
        self.logger.info(f"Normalizing speed, loudness and tone: {Path(source).name}")
        return await self.apply_filters(source, NORMALIZATION_CHAIN, destination, operation="normalize")

    async def concatenate(self, sources: list[Path], destination: Path) -> Path:
        """
        Join chunk files in order without re-encoding, then delete the inputs.

        Raises:
            ConcatenationError: no inputs, missing input, or tool failure. The
                manifest is removed either way; inputs stay with the caller on
                failure.
        """
        sources = [Path(source) for source in sources]
        destination = Path(destination)
        if not sources:
            raise ConcatenationError("No audio chunks to concatenate")
        missing = [str(source) for source in sources if not source.exists()]
        if missing:
            raise ConcatenationError(f"Audio chunks not found: {', '.join(missing)}")
        ensure_directory(destination.parent)

        if len(sources) == 1:
            shutil.move(str(sources[0]), str(destination))
            return destination

        self.logger.info(f"Concatenating {len(sources)} audio chunks into {destination.name}")
        with AudioArtifact.acquire(destination.parent, f"{destination.stem}_filelist", ".txt") as manifest:
            self.transform.write_manifest(sources, manifest.path)
            try:
                await self.transform.concatenate(manifest.path, destination)
            except AudioToolError as exc:
                discard(destination)
                raise ConcatenationError(
                    f"Concatenation of {len(sources)} chunks failed: {exc}", diagnostics=exc.stderr
                ) from exc

        for source in sources:
            discard(source)
        return destination

    async def analyze(self, source: Path) -> NoiseProfile:
        return await self.analyzer.analyze(Path(source))

    async def denoise(
        self,
        source: Path,
        destination: Path,
        options: DenoiseConfig | None = None,
    ) -> NoiseProfile | None:
        """
        Reduce noise in ``source``.

        With level ``auto`` the analyzer picks the level (and the category,
        unless ``options.target_type`` names one). A resolved level of
        ``none`` copies the file.

        Returns:
            The noise profile used for an ``auto`` run, otherwise None
        """
        options = options or DenoiseConfig()
        source = Path(source)
        if not source.exists():
            raise FilterError(f"Input file not found: {source}", operation="denoise")

        level = options.level
        noise_type = options.target_type or NoiseType.MIXED
        profile: NoiseProfile | None = None
        if level == DenoiseLevel.AUTO:
            profile = await self.analyze(source)
            level = profile.recommended_level
            noise_type = options.target_type or profile.noise_type

        self.logger.info(
            f"Denoising {source.name}: level={level.value} type={noise_type.value} "
            f"preserve_quality={options.preserve_quality}"
        )
        chain = compose_denoise_chain(level, noise_type, options.preserve_quality)
        await self.apply_filters(
            source, chain, destination, sample_rate=DENOISE_SAMPLE_RATE, operation="denoise"
        )
        return profile

    async def denoise_batch(
        self,
        files: list[tuple[Path, Path]],
        options: DenoiseConfig | None = None,
    ) -> list[NoiseProfile | None]:
        """Denoise (source, destination) pairs one after another."""
        self.logger.info(f"Batch denoise: {len(files)} files")
        profiles: list[NoiseProfile | None] = []
        for index, (source, destination) in enumerate(files, start=1):
            self.logger.info(f"[{index}/{len(files)}] {Path(source).name}")
            profiles.append(await self.denoise(source, destination, options))
        return profiles

    def _pcm_bytes(self, payload: bytes | str) -> bytes:
        if isinstance(payload, str):
            try:
                pcm = base64.b64decode(payload, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise DecodeError(f"Audio payload is not valid base64: {exc}") from exc
        else:
            pcm = bytes(payload)
        if not pcm:
            raise DecodeError("Audio payload is empty")
        if len(pcm) % (PCM_SAMPLE_WIDTH * self.channels):
            raise DecodeError(f"Audio payload length {len(pcm)} is not a whole number of samples")
        return pcm
