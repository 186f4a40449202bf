"""Speech synthesis client with transient-error retry and exponential backoff."""

from __future__ import annotations

import asyncio

from scriptvoice.shared.config import NarrationSettings
from scriptvoice.shared.enums import TTSProvider
from scriptvoice.shared.exceptions import ConfigurationError, SynthesisError
from scriptvoice.shared.logging_utils import setup_logging

from .drivers.base import SpeechEngine, SpeechServiceError

logger = setup_logging("tts-service")

# Last-resort markers for errors that carry no structured status.
TRANSIENT_MESSAGE_MARKERS = ("INTERNAL", "500", "503")


def is_transient_error(exc: BaseException) -> bool:
    """
    Decide whether a synthesis failure is worth retrying.

    Order of evidence: an explicit ``transient`` flag set by the driver, then
    a structured status code (5xx is transient), then known server-error
    markers in the message.
    """
    transient = getattr(exc, "transient", None)
    if isinstance(transient, bool):
        return transient

    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(exc, "code", None)
    if isinstance(status, int) and not isinstance(status, bool):
        return 500 <= status < 600

    message = str(exc)
    return any(marker in message for marker in TRANSIENT_MESSAGE_MARKERS)


class SpeechSynthesisClient:
    """Synthesize chunks through a speech engine, retrying transient failures.

    The delay before retry ``n`` (1-based) is ``base_delay * 2 ** (n - 1)``.
    Inter-call rate limiting is the caller's job.
    """

    def __init__(self, engine: SpeechEngine, max_attempts: int = 3, base_delay: float = 1.0) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.engine = engine
        self.max_attempts = max_attempts
        self.base_delay = base_delay

    async def synthesize(self, text: str, voice: str, model: str) -> bytes:
        """
        Synthesize one chunk.

        Raises:
            SynthesisError: on a permanent failure, or once attempts are exhausted
        """
        last_error: BaseException | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self.engine.synthesize(text, voice=voice, model=model)
            except Exception as exc:
                last_error = exc
                if not is_transient_error(exc):
                    logger.error(f"Speech service error (not retryable): {exc}")
                    raise SynthesisError(str(exc), attempts=attempt) from exc
                if attempt == self.max_attempts:
                    break
                wait_time = self.base_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"Speech service error, retrying in {wait_time:g}s "
                    f"(attempt {attempt}/{self.max_attempts}): {exc}"
                )
                await asyncio.sleep(wait_time)

        logger.error(f"Speech service failed after {self.max_attempts} attempts: {last_error}")
        raise SynthesisError(
            f"Gave up after {self.max_attempts} attempts: {last_error}",
            attempts=self.max_attempts,
        ) from last_error

    @classmethod
    def from_settings(cls, settings: NarrationSettings) -> "SpeechSynthesisClient":
        return cls(
            create_speech_engine(settings),
            max_attempts=settings.max_attempts,
            base_delay=settings.retry_base_delay,
        )


def create_speech_engine(settings: NarrationSettings) -> SpeechEngine:
    """Build the engine for the configured provider.

    Raises:
        ConfigurationError: when the provider's API key is missing
    """
    api_key = settings.api_key_for_provider()
    if settings.provider == TTSProvider.OPENAI:
        if not api_key:
            raise ConfigurationError(
                "OpenAI API key is required. Set OPENAI_API_KEY environment variable.",
                operation="configure",
            )
        from .drivers.openai_tts import OpenAISpeechEngine

        return OpenAISpeechEngine(api_key)

    if not api_key:
        raise ConfigurationError(
            "Gemini API key is required. Set GEMINI_API_KEY environment variable.",
            operation="configure",
        )
    from .drivers.gemini import GeminiSpeechEngine

    return GeminiSpeechEngine(api_key)
