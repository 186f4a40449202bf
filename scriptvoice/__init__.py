"""Script-to-narration audio pipeline."""

__version__ = "0.1.0"
