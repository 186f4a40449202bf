"""Narration orchestrator: script sections in, one audio file per section out."""

from __future__ import annotations

import asyncio
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from scriptvoice.services.text_processing import DictionaryManager, apply_dictionary, split_text_into_chunks
from scriptvoice.shared.config import NarrationSettings
from scriptvoice.shared.enums import PipelineStatus
from scriptvoice.shared.exceptions import NarrationError
from scriptvoice.shared.file_utils import AudioArtifact, ensure_directory, section_filename
from scriptvoice.shared.logging_utils import setup_logging
from scriptvoice.shared.models import (
    DenoiseConfig,
    PipelineMetrics,
    PipelineResult,
    ReplacementDictionary,
    ScriptInput,
    Section,
    SectionResult,
)

if TYPE_CHECKING:
    from scriptvoice.services.audio_processing.service import AudioProcessor
    from scriptvoice.services.tts_service.service import SpeechSynthesisClient

logger = setup_logging("narration-orchestrator")

LONG_SECTION_CHARS = 5000


class _RateLimiter:
    """Waits a fixed delay before every call except the first of a run."""

    def __init__(self, delay_seconds: float) -> None:
        self.delay_seconds = delay_seconds
        self.calls = 0

    async def wait(self) -> None:
        if self.calls and self.delay_seconds > 0:
            logger.info(f"Rate limit: waiting {self.delay_seconds:g}s before next synthesis call")
            await asyncio.sleep(self.delay_seconds)
        self.calls += 1


class NarrationOrchestrator:
    """Runs the narration pipeline for whole scripts or single texts.

    Sections are processed strictly in order, and so are the chunks within a
    section. A failing section is recorded and the run moves on; only a
    configuration problem aborts the run, and it does so before any
    synthesis call is made.
    """

    def __init__(
        self,
        settings: NarrationSettings | None = None,
        synthesizer: SpeechSynthesisClient | None = None,
        audio_processor: AudioProcessor | None = None,
        dictionary_manager: DictionaryManager | None = None,
    ):
        self.settings = settings or NarrationSettings.from_config()
        self._synthesizer = synthesizer
        self._audio_processor = audio_processor
        self._dictionary_manager = dictionary_manager

    @property
    def synthesizer(self) -> SpeechSynthesisClient:
        """Lazy load the speech synthesis client."""
        if self._synthesizer is None:
            from scriptvoice.services.tts_service.service import SpeechSynthesisClient

            self._synthesizer = SpeechSynthesisClient.from_settings(self.settings)
        return self._synthesizer

    @synthesizer.setter
    def synthesizer(self, service: SpeechSynthesisClient | None):
        self._synthesizer = service

    @synthesizer.deleter
    def synthesizer(self):
        self._synthesizer = None

    @property
    def audio_processor(self) -> AudioProcessor:
        """Lazy load audio processor service."""
        if self._audio_processor is None:
            from scriptvoice.services.audio_processing.service import AudioProcessor

            self._audio_processor = AudioProcessor.from_settings(self.settings)
        return self._audio_processor

    @audio_processor.setter
    def audio_processor(self, service: AudioProcessor | None):
        self._audio_processor = service

    @audio_processor.deleter
    def audio_processor(self):
        self._audio_processor = None

    @property
    def dictionary_manager(self) -> DictionaryManager:
        if self._dictionary_manager is None:
            self._dictionary_manager = DictionaryManager(self.settings.dictionary_path)
        return self._dictionary_manager

    @dictionary_manager.setter
    def dictionary_manager(self, manager: DictionaryManager):
        self._dictionary_manager = manager

    @dictionary_manager.deleter
    def dictionary_manager(self):
        self._dictionary_manager = None

    def _run_settings(
        self,
        voice: str | None = None,
        model: str | None = None,
        enable_denoise: bool | None = None,
        denoise: DenoiseConfig | None = None,
    ) -> NarrationSettings:
        update: dict[str, Any] = {}
        if voice is not None:
            update["voice"] = voice
        if model is not None:
            update["model"] = model
        if enable_denoise is not None:
            update["denoise_enabled"] = enable_denoise
        if denoise is not None:
            update["denoise"] = denoise
        return self.settings.model_copy(update=update) if update else self.settings

    async def generate(
        self,
        script: ScriptInput,
        *,
        voice: str | None = None,
        model: str | None = None,
        enable_denoise: bool | None = None,
        denoise: DenoiseConfig | None = None,
    ) -> PipelineResult:
        """
        Narrate every narratable section of ``script``.

        Args:
            script: Ordered script sections
            voice, model, enable_denoise, denoise: Overrides for this run only

        Returns:
            PipelineResult with one SectionResult per processed section

        Raises:
            ConfigurationError: missing credentials, before any work starts
        """
        run_settings = self._run_settings(voice, model, enable_denoise, denoise)
        synthesizer = self.synthesizer
        start_time = time.time()
        run_id = datetime.now(UTC).strftime("%Y%m%d%H%M%S")
        ensure_directory(run_settings.output_dir)

        dictionary = self.dictionary_manager.load()
        limiter = _RateLimiter(run_settings.rate_limit_seconds)

        logger.info(
            f"Starting narration: '{script.title}' ({len(script.sections)} sections, "
            f"voice={run_settings.voice}, model={run_settings.model}, "
            f"denoise={'on' if run_settings.denoise_enabled else 'off'})"
        )

        results: list[SectionResult] = []
        skipped = 0
        for index, section in enumerate(script.sections):
            text = section.narration_text().strip() if section.narratable else ""
            if not text:
                skipped += 1
                logger.info(f"[{index + 1}/{len(script.sections)}] Skipping {section.type.value} section")
                continue
            results.append(
                await self._narrate_section(
                    index, section, text, run_settings, run_id, dictionary, synthesizer, limiter
                )
            )

        success_count = sum(1 for result in results if result.success)
        failure_count = len(results) - success_count
        duration_ms = int((time.time() - start_time) * 1000)
        status = PipelineStatus.SUCCESS if failure_count == 0 else PipelineStatus.ERROR

        logger.info(
            f"Narration finished: {success_count} succeeded, {failure_count} failed, "
            f"{skipped} skipped in {duration_ms / 1000:.1f}s"
        )
        return PipelineResult(
            status=status,
            sections=results,
            metrics=PipelineMetrics(
                total_sections=len(script.sections),
                success_count=success_count,
                failure_count=failure_count,
                skipped_count=skipped,
                duration_ms=duration_ms,
                timestamp=datetime.now(UTC),
            ),
        )

    async def generate_from_text(
        self,
        text: str,
        filename: str = "narration.mp3",
        *,
        voice: str | None = None,
        model: str | None = None,
        enable_denoise: bool | None = None,
        denoise: DenoiseConfig | None = None,
    ) -> Path:
        """
        Narrate a single text into ``output_dir / filename``.

        Raises:
            ValueError: empty text
            NarrationError: any failure; nothing is written in that case
        """
        if not text or not text.strip():
            raise ValueError("Text to narrate must not be empty")

        run_settings = self._run_settings(voice, model, enable_denoise, denoise)
        synthesizer = self.synthesizer
        ensure_directory(run_settings.output_dir)
        destination = Path(run_settings.output_dir) / filename
        run_id = datetime.now(UTC).strftime("%Y%m%d%H%M%S")

        await self._narrate_text(
            text,
            destination,
            run_settings,
            f"text_{run_id}",
            self.dictionary_manager.load(),
            synthesizer,
            _RateLimiter(run_settings.rate_limit_seconds),
        )
        logger.info(f"Narration written to {destination}")
        return destination

    async def _narrate_section(
        self,
        index: int,
        section: Section,
        text: str,
        run_settings: NarrationSettings,
        run_id: str,
        dictionary: ReplacementDictionary | None,
        synthesizer: SpeechSynthesisClient,
        limiter: _RateLimiter,
    ) -> SectionResult:
        filename = section_filename(index, section.title)
        destination = Path(run_settings.output_dir) / filename
        logger.info(f"[section {index + 1}] Narrating '{section.title}'")
        try:
            await self._narrate_text(
                text,
                destination,
                run_settings,
                f"s{index + 1:02d}_{run_id}",
                dictionary,
                synthesizer,
                limiter,
            )
        except (NarrationError, OSError, ValueError) as exc:
            logger.error(f"[section {index + 1}] Failed: {exc}")
            return SectionResult(
                section_index=index,
                section_title=section.title,
                success=False,
                error=str(exc),
            )

        logger.info(f"[section {index + 1}] Saved {filename}")
        return SectionResult(
            section_index=index,
            section_title=section.title,
            filename=filename,
            success=True,
        )

    async def _narrate_text(
        self,
        text: str,
        destination: Path,
        run_settings: NarrationSettings,
        artifact_prefix: str,
        dictionary: ReplacementDictionary | None,
        synthesizer: SpeechSynthesisClient,
        limiter: _RateLimiter,
    ) -> Path:
        processed = apply_dictionary(text, dictionary)
        if len(processed) > LONG_SECTION_CHARS:
            logger.warning(f"Long text ({len(processed)} chars) for {destination.name}")

        chunks = split_text_into_chunks(processed, run_settings.max_chunk_chars)
        if not chunks:
            raise ValueError("Text to narrate must not be empty")
        logger.info(f"Split into {len(chunks)} chunk(s) for {destination.name}")

        output_dir = Path(run_settings.output_dir)
        artifacts: list[AudioArtifact] = []
        normalized_paths: list[Path] = []
        try:
            for chunk_index, chunk in enumerate(chunks, start=1):
                stem = f"chunk_{artifact_prefix}_{chunk_index:03d}"
                await limiter.wait()
                audio = await synthesizer.synthesize(
                    chunk, voice=run_settings.voice, model=run_settings.model
                )

                decoded = AudioArtifact.acquire(output_dir, f"{stem}_raw", ".mp3")
                artifacts.append(decoded)
                await self.audio_processor.decode(audio, decoded.path)
                source = decoded.path

                if run_settings.denoise_enabled:
                    denoised = AudioArtifact.acquire(output_dir, f"{stem}_denoised", ".mp3")
                    artifacts.append(denoised)
                    await self.audio_processor.denoise(source, denoised.path, run_settings.denoise)
                    source = denoised.path

                normalized = AudioArtifact.acquire(output_dir, f"{stem}_norm", ".mp3")
                artifacts.append(normalized)
                await self.audio_processor.normalize(source, normalized.path)
                normalized_paths.append(normalized.path)
                logger.info(f"Chunk {chunk_index}/{len(chunks)} ready ({len(chunk)} chars)")

            await self.audio_processor.concatenate(normalized_paths, destination)
        finally:
            for artifact in artifacts:
                artifact.release()
        return destination
