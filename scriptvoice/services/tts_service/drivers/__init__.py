"""TTS driver implementations"""

from .base import SpeechEngine, SpeechServiceError
from .gemini import GeminiSpeechEngine
from .openai_tts import OpenAISpeechEngine

__all__ = ["GeminiSpeechEngine", "OpenAISpeechEngine", "SpeechEngine", "SpeechServiceError"]
