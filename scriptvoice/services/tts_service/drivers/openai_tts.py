from typing import ClassVar

import openai
from openai import AsyncOpenAI

from .base import SpeechEngine, SpeechServiceError


class OpenAISpeechEngine(SpeechEngine):
    """OpenAI TTS implementation returning raw PCM."""

    SUPPORTED_MODELS: ClassVar[list[str]] = ["tts-1", "tts-1-hd", "gpt-4o-mini-tts"]
    SUPPORTED_VOICES: ClassVar[list[str]] = ["alloy", "echo", "fable", "onyx", "nova", "shimmer"]

    def __init__(self, api_key: str, client: AsyncOpenAI | None = None):
        """
        Initialize OpenAI TTS engine.

        Args:
            api_key: OpenAI API key
            client: Preconfigured SDK client (tests inject a stub)
        """
        self.api_key = api_key
        # SDK retries are disabled; retry policy lives in SpeechSynthesisClient.
        self.client = client or AsyncOpenAI(api_key=api_key, max_retries=0)

    async def synthesize(self, text: str, voice: str, model: str) -> bytes:
        """
        Synthesize speech from text using OpenAI TTS.

        Unknown voices and models fall back to ``alloy`` / ``tts-1``. The
        ``pcm`` response format is 24 kHz mono 16-bit, the same layout the
        Gemini engine returns.
        """
        if voice not in self.SUPPORTED_VOICES:
            voice = "alloy"
        if model not in self.SUPPORTED_MODELS:
            model = "tts-1"

        try:
            response = await self.client.audio.speech.create(
                model=model,
                voice=voice,
                input=text,
                response_format="pcm",
            )
        except openai.APIStatusError as exc:
            raise SpeechServiceError(
                f"OpenAI TTS synthesis failed: {exc.message}", status_code=exc.status_code
            ) from exc
        except openai.APIConnectionError as exc:
            raise SpeechServiceError(f"OpenAI TTS connection failed: {exc}", transient=True) from exc

        data = response.content
        if not data:
            raise SpeechServiceError("No audio data returned from OpenAI TTS", transient=False)
        return data
