"""Sentence-aware text chunking bounded by the speech service's input limit."""

from __future__ import annotations

import re

DEFAULT_MAX_CHUNK_CHARS = 1000

# Split after CJK terminators and newlines, and after ASCII terminators that
# are followed by whitespace (keeps "3.14" and "e.g." mid-sentence intact).
_SENTENCE_BOUNDARY = re.compile(r"(?<=[。！？\n])|(?<=[.!?])(?=\s)")


def split_sentences(text: str) -> list[str]:
    """Split text into sentences, each keeping its terminator."""
    return [sentence for sentence in _SENTENCE_BOUNDARY.split(text) if sentence]


def split_text_into_chunks(text: str, max_chars: int = DEFAULT_MAX_CHUNK_CHARS) -> list[str]:
    """
    Split text into chunks of at most ``max_chars`` characters.

    Text that already fits is returned unchanged as a single chunk. Longer
    text is split into sentences which are packed greedily; a sentence longer
    than ``max_chars`` is kept whole in its own chunk rather than cut.

    Args:
        text: Text to split
        max_chars: Maximum chunk length

    Returns:
        Ordered list of non-empty chunks (empty for blank input)
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    if not text.strip():
        return []
    if len(text) <= max_chars:
        return [text]

    chunks: list[str] = []
    current = ""
    for sentence in split_sentences(text):
        if len(current) + len(sentence) <= max_chars:
            current += sentence
            continue
        if current.strip():
            chunks.append(current.strip())
        current = sentence

    if current.strip():
        chunks.append(current.strip())
    return chunks
