from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from .base import SpeechEngine, SpeechServiceError


class GeminiSpeechEngine(SpeechEngine):
    """Gemini text-to-speech via the google-genai SDK."""

    def __init__(self, api_key: str, client: genai.Client | None = None):
        """
        Initialize Gemini TTS engine.

        Args:
            api_key: Gemini API key
            client: Preconfigured SDK client (tests inject a stub)
        """
        self.api_key = api_key
        self.client = client or genai.Client(api_key=api_key)

    async def synthesize(self, text: str, voice: str, model: str) -> bytes:
        """
        Synthesize speech for a single chunk.

        Args:
            text: Chunk text
            voice: Prebuilt voice name (e.g. ``Puck``)
            model: TTS model identifier

        Returns:
            Raw PCM bytes (24 kHz, mono, 16-bit)
        """
        speech_config = genai_types.SpeechConfig(
            voice_config=genai_types.VoiceConfig(
                prebuilt_voice_config=genai_types.PrebuiltVoiceConfig(voice_name=voice)
            )
        )
        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=text,
                config=genai_types.GenerateContentConfig(
                    response_modalities=["AUDIO"],
                    speech_config=speech_config,
                ),
            )
        except genai_errors.APIError as exc:
            raise SpeechServiceError(f"Gemini API error: {exc}", status_code=exc.code) from exc

        data = self._extract_audio(response)
        if not data:
            raise SpeechServiceError("No audio data returned from Gemini API", transient=False)
        return data

    @staticmethod
    def _extract_audio(response: genai_types.GenerateContentResponse) -> bytes | None:
        candidates = response.candidates or []
        if not candidates or not candidates[0].content or not candidates[0].content.parts:
            return None
        inline_data = candidates[0].content.parts[0].inline_data
        if inline_data is None:
            return None
        return inline_data.data
