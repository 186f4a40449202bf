"""Text preparation ahead of speech synthesis."""

from .chunker import DEFAULT_MAX_CHUNK_CHARS, split_text_into_chunks
from .dictionary import DictionaryManager
from .substitution import apply_dictionary

__all__ = ["DEFAULT_MAX_CHUNK_CHARS", "DictionaryManager", "apply_dictionary", "split_text_into_chunks"]
