"""Term substitution applied to narration text before synthesis."""

from __future__ import annotations

import re

from scriptvoice.shared.models import ReplacementDictionary


def apply_dictionary(text: str, dictionary: ReplacementDictionary | None) -> str:
    """
    Replace every case-insensitive occurrence of each dictionary term with its reading.

    Terms are applied longest first so a term contained in a longer one
    (``GPT`` inside ``ChatGPT``) cannot pre-empt the longer match. Terms are
    matched literally.
    """
    if not dictionary or not dictionary.replacements:
        return text

    ordered = sorted(dictionary.replacements.items(), key=lambda item: len(item[0]), reverse=True)
    for term, reading in ordered:
        pattern = re.compile(re.escape(term), re.IGNORECASE)
        # Callable replacement keeps backslashes in the reading literal.
        text = pattern.sub(lambda _match, value=reading: value, text)
    return text
