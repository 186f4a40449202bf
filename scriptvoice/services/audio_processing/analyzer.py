"""Heuristic noise analysis from RMS and peak levels."""

from __future__ import annotations

import math
import re
from pathlib import Path

from scriptvoice.shared.enums import DenoiseLevel, NoiseType
from scriptvoice.shared.exceptions import AnalysisError
from scriptvoice.shared.logging_utils import setup_logging
from scriptvoice.shared.models import NoiseProfile

from .transform import AudioToolError, AudioTransform

logger = setup_logging("noise-analyzer")

_RMS_PATTERN = re.compile(r"RMS level dB:\s*(-?(?:inf|[\d.]+))")
_PEAK_PATTERN = re.compile(r"Peak level dB:\s*(-?(?:inf|[\d.]+))")

# (upper bound of dynamic range in dB, severity, recommended level, category);
# a smaller dynamic range means the noise floor sits close to the speech.
_CLASSIFICATION_TABLE: tuple[tuple[float, int, DenoiseLevel, NoiseType], ...] = (
    (10.0, 70, DenoiseLevel.STRONG, NoiseType.WHITE_NOISE),
    (20.0, 40, DenoiseLevel.MEDIUM, NoiseType.ROOM_TONE),
    (30.0, 15, DenoiseLevel.LIGHT, NoiseType.BACKGROUND_HUM),
)

QUIET_SIGNAL_RMS_DB = -40.0
QUIET_SIGNAL_MIN_SEVERITY = 50

_LEVEL_ORDER = {
    DenoiseLevel.NONE: 0,
    DenoiseLevel.LIGHT: 1,
    DenoiseLevel.MEDIUM: 2,
    DenoiseLevel.STRONG: 3,
}

DEFAULT_PROFILE = NoiseProfile(
    noise_type=NoiseType.MIXED,
    severity=30,
    recommended_level=DenoiseLevel.MEDIUM,
)


def classify_levels(rms_db: float, peak_db: float) -> NoiseProfile:
    """Classify noise from overall RMS and peak levels (both in dB)."""
    dynamic_range = peak_db - rms_db

    severity = 0
    level = DenoiseLevel.NONE
    noise_type = NoiseType.MIXED
    for upper_bound, row_severity, row_level, row_type in _CLASSIFICATION_TABLE:
        if dynamic_range < upper_bound:
            severity, level, noise_type = row_severity, row_level, row_type
            break

    if rms_db < QUIET_SIGNAL_RMS_DB:
        severity = max(severity, QUIET_SIGNAL_MIN_SEVERITY)
        if _LEVEL_ORDER[level] < _LEVEL_ORDER[DenoiseLevel.MEDIUM]:
            level = DenoiseLevel.MEDIUM

    return NoiseProfile(
        noise_type=noise_type,
        severity=severity,
        recommended_level=level,
        rms_db=rms_db,
        peak_db=peak_db,
    )


def parse_audio_statistics(report: str) -> tuple[float, float]:
    """
    Extract (RMS dB, peak dB) from an astats report.

    Raises:
        AnalysisError: when either level is missing or not finite
    """
    rms_match = _RMS_PATTERN.search(report)
    peak_match = _PEAK_PATTERN.search(report)
    if not rms_match or not peak_match:
        raise AnalysisError("RMS/peak levels not found in audio statistics")
    try:
        rms_db = float(rms_match.group(1))
        peak_db = float(peak_match.group(1))
    except ValueError as exc:
        raise AnalysisError(f"Unreadable audio statistics: {exc}") from exc
    if math.isinf(rms_db) or math.isinf(peak_db):
        raise AnalysisError("Audio statistics report silence (infinite levels)")
    return rms_db, peak_db


class NoiseAnalyzer:
    """Estimate noise characteristics of an audio file. Advisory only: never raises."""

    def __init__(self, transform: AudioTransform) -> None:
        self.transform = transform

    async def analyze(self, audio_path: Path) -> NoiseProfile:
        logger.info(f"Analyzing noise: {audio_path}")
        try:
            if not Path(audio_path).exists():
                raise AnalysisError(f"Audio file not found: {audio_path}")
            try:
                report = await self.transform.audio_statistics(Path(audio_path))
            except AudioToolError as exc:
                raise AnalysisError(f"Audio statistics pass failed: {exc}") from exc
            rms_db, peak_db = parse_audio_statistics(report)
        except AnalysisError as exc:
            logger.warning(f"Noise analysis failed, using default profile: {exc}")
            return DEFAULT_PROFILE

        profile = classify_levels(rms_db, peak_db)
        logger.info(
            f"Noise analysis: type={profile.noise_type.value} severity={profile.severity} "
            f"recommended={profile.recommended_level.value} (rms={rms_db:.1f}dB peak={peak_db:.1f}dB)"
        )
        return profile
