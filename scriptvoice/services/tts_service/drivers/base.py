from abc import ABC, abstractmethod


class SpeechServiceError(Exception):
    """Failure reported by a remote speech service.

    ``status_code`` carries the transport's structured status when one is
    available; ``transient`` is set when the driver already knows whether
    the failure is worth retrying.
    """

    def __init__(self, message: str, status_code: int | None = None, transient: bool | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.transient = transient


class SpeechEngine(ABC):
    """Abstract base class for speech synthesis engines."""

    @abstractmethod
    async def synthesize(self, text: str, voice: str, model: str) -> bytes:
        """Synthesize one chunk of text. Returns raw 16-bit little-endian PCM."""
        pass
