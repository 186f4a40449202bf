"""Reading dictionary storage (read-only view used by the pipeline)."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from scriptvoice.shared.config import config
from scriptvoice.shared.logging_utils import setup_logging
from scriptvoice.shared.models import ReplacementDictionary

logger = setup_logging("text-dictionary")


class DictionaryManager:
    """Load the term → reading dictionary from its JSON file."""

    def __init__(self, storage_path: str | Path | None = None):
        """Initialize dictionary manager with storage path."""
        self.storage_path = Path(
            storage_path or config.get("dictionary_path", "./config/dictionary.json")
        )

    def load(self) -> ReplacementDictionary | None:
        """
        Load the current dictionary.

        Returns:
            The dictionary, or None when the file is missing or invalid. A
            missing dictionary is not an error; narration proceeds without
            substitutions.
        """
        if not self.storage_path.exists():
            logger.info(f"No dictionary at {self.storage_path}; proceeding without substitutions")
            return None

        try:
            with open(self.storage_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            dictionary = ReplacementDictionary.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Failed to load dictionary {self.storage_path}, proceeding without it: {e}")
            return None

        logger.info(f"Dictionary loaded: {len(dictionary)} entries")
        return dictionary
