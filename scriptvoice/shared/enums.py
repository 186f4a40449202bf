"""
Enums and constants used across the pipeline.
"""

from enum import Enum


class SectionType(str, Enum):
    """Section kinds a script may contain."""

    TITLE = "title"
    SECTION_DIVIDER = "sectionDivider"
    CONTENT = "content"
    TABLE = "table"
    CODE_BLOCK = "codeBlock"
    SCREENSHOT = "screenshot"


NON_NARRATABLE_SECTIONS = frozenset({SectionType.TITLE, SectionType.SECTION_DIVIDER})


class DenoiseLevel(str, Enum):
    """Noise-reduction treatment intensity."""

    NONE = "none"
    LIGHT = "light"
    MEDIUM = "medium"
    STRONG = "strong"
    AUTO = "auto"


class NoiseType(str, Enum):
    """Dominant noise characteristic of a recording."""

    WHITE_NOISE = "white_noise"
    BACKGROUND_HUM = "background_hum"
    CLICK_POP = "click_pop"
    ROOM_TONE = "room_tone"
    BREATH = "breath"
    MIXED = "mixed"


class PipelineStatus(str, Enum):
    """Overall outcome of a narration run."""

    SUCCESS = "success"
    ERROR = "error"


class TTSProvider(str, Enum):
    """Speech synthesis backends."""

    GEMINI = "gemini"
    OPENAI = "openai"
