"""
Data models shared by the narration pipeline services.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import NON_NARRATABLE_SECTIONS, DenoiseLevel, NoiseType, PipelineStatus, SectionType


class ReplacementDictionary(BaseModel):
    """Term → phonetic reading mapping applied before synthesis."""

    model_config = ConfigDict(frozen=True)

    description: str = Field(default="", description="Free-form note about the dictionary")
    replacements: dict[str, str] = Field(default_factory=dict, description="Term to reading map")

    @field_validator("replacements")
    @classmethod
    def _terms_unique_ignoring_case(cls, value: dict[str, str]) -> dict[str, str]:
        seen: dict[str, str] = {}
        for term in value:
            if not term:
                raise ValueError("Dictionary terms must not be empty")
            folded = term.casefold()
            if folded in seen:
                raise ValueError(f"Terms '{seen[folded]}' and '{term}' differ only by case")
            seen[folded] = term
        return value

    def __len__(self) -> int:
        return len(self.replacements)


class Section(BaseModel):
    """One logical unit of a script (typically one slide)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: SectionType = Field(default=SectionType.CONTENT, description="Section kind")
    title: str = Field(default="", description="Section title")
    subtitle: str | None = None
    narration: str | None = None
    bullets: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)

    @property
    def narratable(self) -> bool:
        return self.type not in NON_NARRATABLE_SECTIONS

    def narration_text(self) -> str:
        """Text read aloud for this section: title, subtitle, narration, then bullets."""
        parts: list[str] = []
        if self.title:
            parts.append(self.title)
        if self.subtitle:
            parts.append(self.subtitle)
        if self.narration:
            parts.append(self.narration)
        parts.extend(bullet for bullet in self.bullets if bullet)
        return "\n\n".join(parts)


class ScriptInput(BaseModel):
    """A full narration script."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(default="", description="Script title")
    duration: str | None = Field(default=None, description="Planned running time, free-form")
    sections: list[Section] = Field(default_factory=list)


def load_script(path: str | Path) -> ScriptInput:
    """Read a UTF-8 JSON script file."""
    with open(path, "r", encoding="utf-8") as stream:
        data = json.load(stream)
    return ScriptInput.model_validate(data)


class NoiseProfile(BaseModel):
    """Result of a heuristic noise analysis."""

    model_config = ConfigDict(frozen=True)

    noise_type: NoiseType = NoiseType.MIXED
    severity: int = Field(default=0, ge=0, le=100, description="Noise severity score")
    recommended_level: DenoiseLevel = DenoiseLevel.NONE
    rms_db: float | None = None
    peak_db: float | None = None

    @property
    def dynamic_range(self) -> float | None:
        if self.rms_db is None or self.peak_db is None:
            return None
        return self.peak_db - self.rms_db


class DenoiseConfig(BaseModel):
    """Caller-facing noise-reduction options."""

    model_config = ConfigDict(frozen=True)

    level: DenoiseLevel = DenoiseLevel.MEDIUM
    preserve_quality: bool = True
    target_type: NoiseType | None = Field(
        default=None, description="Explicit noise category; overrides the analyzer's guess"
    )


class FilterStage(BaseModel):
    """One named stage of an audio filter graph."""

    model_config = ConfigDict(frozen=True)

    name: str
    params: dict[str, str] = Field(default_factory=dict)

    def render(self) -> str:
        if not self.params:
            return self.name
        options = ":".join(f"{key}={value}" for key, value in self.params.items())
        return f"{self.name}={options}"


class SectionResult(BaseModel):
    """Outcome of narrating one section."""

    section_index: int = Field(..., ge=0, description="Zero-based index in the script")
    section_title: str = ""
    filename: str | None = Field(default=None, description="Output file name on success")
    success: bool
    error: str | None = None


class PipelineMetrics(BaseModel):
    total_sections: int
    success_count: int
    failure_count: int
    skipped_count: int = 0
    duration_ms: int
    timestamp: datetime


class PipelineResult(BaseModel):
    """Aggregated result of a narration run."""

    status: PipelineStatus
    sections: list[SectionResult] = Field(default_factory=list)
    metrics: PipelineMetrics

    @property
    def files(self) -> list[str]:
        return [result.filename for result in self.sections if result.success and result.filename]
