"""
Exception hierarchy for the narration pipeline.

The orchestrator is the only place that decides whether an error aborts the
run (``ConfigurationError``) or marks a single section as failed (everything
else).
"""

from __future__ import annotations


class NarrationError(Exception):
    """Base error carrying the operation that failed."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        self.operation = operation
        self.message = message
        prefix = f"[{operation}] " if operation else ""
        super().__init__(f"{prefix}{message}")


class ConfigurationError(NarrationError):
    """Missing credential or invalid setting; fatal before any work starts."""


class SynthesisError(NarrationError):
    """Speech service failed after retries were exhausted (or permanently)."""

    def __init__(self, message: str, attempts: int, operation: str = "synthesize") -> None:
        self.attempts = attempts
        super().__init__(message, operation)


class AudioProcessingError(NarrationError):
    """Base for failures reported by the transcoding tool."""

    def __init__(self, message: str, operation: str, diagnostics: str = "") -> None:
        self.diagnostics = diagnostics
        super().__init__(message, operation)


class DecodeError(AudioProcessingError):
    """Raw PCM payload could not be encoded into an audio container."""

    def __init__(self, message: str, diagnostics: str = "") -> None:
        super().__init__(message, "decode", diagnostics)


class FilterError(AudioProcessingError):
    """A filter chain could not be applied."""

    def __init__(self, message: str, diagnostics: str = "", operation: str = "filter") -> None:
        super().__init__(message, operation, diagnostics)


class ConcatenationError(AudioProcessingError):
    """Chunk files could not be joined."""

    def __init__(self, message: str, diagnostics: str = "") -> None:
        super().__init__(message, "concatenate", diagnostics)


class AnalysisError(NarrationError):
    """Noise analysis failed. Never leaves the analyzer."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "analyze")
